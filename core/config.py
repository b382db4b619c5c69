import os
from dotenv import load_dotenv

load_dotenv()

# JWT Settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-super-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))

# Storage: "postgres" or "memory"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "postgres").lower()

# Postgres: DATABASE_URL wins over the individual DB_* settings
DATABASE_URL = os.getenv("DATABASE_URL")
DB_NAME = os.getenv("DB_NAME", "interview_coach")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_CONNECT_TIMEOUT_SECONDS = int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "10"))

# Seeded admin account (optional)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")

# LLM providers
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "gemma3:4b")
OLLAMA_TIMEOUT_SECONDS = float(os.getenv("OLLAMA_TIMEOUT_SECONDS", "60"))

# Study materials folded into the system prompt
MATERIAL_FILE_CHAR_LIMIT = int(os.getenv("MATERIAL_FILE_CHAR_LIMIT", "5000"))
MATERIAL_TOTAL_CHAR_LIMIT = int(os.getenv("MATERIAL_TOTAL_CHAR_LIMIT", "15000"))
MAX_MATERIAL_FILE_SIZE = int(os.getenv("MAX_MATERIAL_FILE_SIZE", str(5 * 1024 * 1024)))  # 5MB

# Google Sheets stats export
GOOGLE_SHEETS_ACCESS_TOKEN = os.getenv("GOOGLE_SHEETS_ACCESS_TOKEN", "")
GOOGLE_SHEETS_SPREADSHEET_ID = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID", "")
GOOGLE_SHEETS_RANGE = os.getenv("GOOGLE_SHEETS_RANGE", "Sheet1!A:L")
SHEETS_MAX_RETRIES = int(os.getenv("SHEETS_MAX_RETRIES", "3"))
SHEETS_RETRY_DELAY_SECONDS = float(os.getenv("SHEETS_RETRY_DELAY_SECONDS", "2"))
SHEETS_INIT_TIMEOUT_SECONDS = float(os.getenv("SHEETS_INIT_TIMEOUT_SECONDS", "30"))
SHEETS_REQUEST_TIMEOUT_SECONDS = float(os.getenv("SHEETS_REQUEST_TIMEOUT_SECONDS", "15"))

# Rate limiting
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Limits on the endpoints that call an LLM provider
RATE_LIMIT_START_INTERVIEW = os.getenv("RATE_LIMIT_START_INTERVIEW", "10/minute")
RATE_LIMIT_SUBMIT_ANSWER = os.getenv("RATE_LIMIT_SUBMIT_ANSWER", "30/minute")
RATE_LIMIT_COMPLETE_INTERVIEW = os.getenv("RATE_LIMIT_COMPLETE_INTERVIEW", "10/minute")

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "")
