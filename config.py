import os
import re
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "micro_marketplace")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production-0000")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE = os.getenv("JWT_EXPIRE", "7d")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 5 * 1024 * 1024))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def env_flag(value) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


PORT = int(os.getenv("PORT", 8000))
DEBUG = env_flag(os.getenv("DEBUG"))

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([dhms]?)\s*$")
_DURATION_UNITS = {"d": "days", "h": "hours", "m": "minutes", "s": "seconds", "": "seconds"}


def parse_duration(value: str, default: timedelta = timedelta(days=7)) -> timedelta:
    """Parse durations like "7d", "12h", "30m" or a bare number of seconds."""
    match = _DURATION_RE.match(value or "")
    if not match:
        return default
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


TOKEN_TTL = parse_duration(JWT_EXPIRE)
