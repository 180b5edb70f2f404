"""Runtime settings, read from the environment (and a local .env file)."""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _hour(name: str, default: int) -> int:
    value = int(os.getenv(name, default))
    if not 0 <= value <= 23:
        raise ValueError(f"{name} must be an hour between 0 and 23, got {value}")
    return value


DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "shopdb")

PORT = int(os.getenv("PORT", 8000))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Cancelled orders older than this are removed by the daily sweep
ORDER_RETENTION_DAYS = int(os.getenv("ORDER_RETENTION_DAYS", 7))
CLEANUP_HOUR = _hour("CLEANUP_HOUR", 2)
ENABLE_SCHEDULER = _flag("ENABLE_SCHEDULER", True)

# Chat messages expire after a week (TTL index)
MESSAGE_TTL_SECONDS = int(os.getenv("MESSAGE_TTL_SECONDS", 7 * 24 * 60 * 60))

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@store.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin1234")
