import psycopg2

from core import config


def connection_params() -> dict:
    """Keyword arguments for psycopg2.connect built from the DB settings."""
    if config.DATABASE_URL:
        # libpq parses postgres:// URLs itself, query options included
        return {"dsn": config.DATABASE_URL, "connect_timeout": config.DB_CONNECT_TIMEOUT_SECONDS}
    return {
        "dbname": config.DB_NAME,
        "user": config.DB_USER,
        "password": config.DB_PASSWORD,
        "host": config.DB_HOST,
        "port": config.DB_PORT,
        "connect_timeout": config.DB_CONNECT_TIMEOUT_SECONDS,
    }


def get_connection():
    return psycopg2.connect(**connection_params())
