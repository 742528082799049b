"""Environment configuration for the contact relay service."""

import os
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file (for local development)
load_dotenv()

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:5173"]
DEFAULT_PORT = 3001
DEFAULT_DATABASE_URL = "sqlite:///./contact_rate_limits.db"


def _get_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_allowed_origins() -> List[str]:
    """Comma separated ALLOWED_ORIGIN list, trimmed, empty entries dropped."""
    raw = os.environ.get("ALLOWED_ORIGIN")
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_trusted_proxy_hops() -> int:
    """
    Number of reverse proxies in front of the app (TRUST_PROXY).

    0 (the default) ignores X-Forwarded-For entirely. "true" means one proxy.
    """
    value = os.environ.get("TRUST_PROXY", "0").strip().lower()
    if value in ("true", "yes", "on"):
        return 1
    if value in ("false", "no", "off", ""):
        return 0
    return max(int(value), 0)


def get_port() -> int:
    return int(os.environ.get("PORT", str(DEFAULT_PORT)))


def get_recaptcha_secret() -> Optional[str]:
    return os.environ.get("RECAPTCHA_SECRET_KEY")


def get_recaptcha_min_score() -> float:
    return float(os.environ.get("RECAPTCHA_MIN_SCORE", "0.3"))


def get_recaptcha_timeout() -> float:
    return float(os.environ.get("RECAPTCHA_TIMEOUT", "10"))


def get_smtp_settings() -> dict:
    """
    SMTP transport settings.

    The recipient falls back to the SMTP account itself, so a single mailbox
    both sends and receives contact messages.
    """
    smtp_user = os.environ.get("SMTP_USER")
    return {
        "host": os.environ.get("SMTP_HOST", "smtp.gmail.com"),
        "port": int(os.environ.get("SMTP_PORT", "587")),
        "user": smtp_user,
        "password": os.environ.get("SMTP_PASSWORD"),
        "recipient": os.environ.get("CONTACT_RECIPIENT") or smtp_user,
        "timeout": float(os.environ.get("SMTP_TIMEOUT", "10")),
    }


def should_verify_smtp_on_startup() -> bool:
    return _get_bool("VERIFY_SMTP_ON_STARTUP", True)


def get_rate_limit_backend_name() -> str:
    return os.environ.get("RATE_LIMIT_BACKEND", "memory").strip().lower()


def get_database_url() -> str:
    database_url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    # Heroku uses postgres:// but SQLAlchemy 2.0+ requires postgresql://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url
