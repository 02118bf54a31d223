# streamsite/config.py
import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def _get_bool_env_var(value: str) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


# Storage
DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = _get_bool_env_var(os.getenv("SQL_ECHO"))

# auto: try the database, fall back to memory. database: fail if unreachable.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "auto").strip().lower()
if STORAGE_BACKEND not in {"auto", "database", "memory"}:
    raise RuntimeError('"STORAGE_BACKEND" must be one of: auto, database, memory.')

# Seeded admin account
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Rennsz5842")

# Audit sink (Discord webhook)
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")
AUDIT_USERNAME = os.getenv("AUDIT_USERNAME", "Rennsz Website")
AUDIT_TIMEOUT_SECONDS = float(os.getenv("AUDIT_TIMEOUT_SECONDS", "10"))

# Public form throttling
CONTACT_RATE_LIMIT = os.getenv("CONTACT_RATE_LIMIT", "5/minute")

SENTRY_DSN = os.getenv("SENTRY_DSN")

# Logging configuration
from streamsite.logger import logger
logger.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
