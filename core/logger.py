import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# API keys travel in request bodies, so never let them reach a log line
SECRET_PATTERNS = [
    (re.compile(r'(api[_-]?key["\']?\s*[=:]\s*)["\']?[\w.-]{8,}["\']?', re.IGNORECASE), r'\1***MASKED***'),
    (re.compile(r'sk-[\w-]{10,}'), '***MASKED***'),
    (re.compile(r'AIza[\w-]{20,}'), '***MASKED***'),
    (re.compile(r'(bearer\s+)[\w.-]{20,}', re.IGNORECASE), r'\1***MASKED***'),
]


def mask_secrets(text: str) -> str:
    """Mask sensitive values in text."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretMaskingFilter(logging.Filter):
    """Filter to mask secrets in log messages."""

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: mask_secrets(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    mask_secrets(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        return True


def setup_logger(name: str = "", log_level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the root (or named) logger with a console handler and, when
    log_dir is given, a rotating file handler. Safe to call more than once.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if getattr(logger, "_interview_coach_configured", False):
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    secret_filter = SecretMaskingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(secret_filter)
    logger.addHandler(console_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        # Rotate after 5MB, keep 5 backups
        file_handler = RotatingFileHandler(
            path / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(secret_filter)
        logger.addHandler(file_handler)

    logger._interview_coach_configured = True
    return logger
