import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


def _csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    STORE_BACKEND = os.environ.get("STORE_BACKEND", "local")
    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'yerimi.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ACCESS_TOKEN_TTL_SECONDS = int(os.environ.get("ACCESS_TOKEN_TTL_SECONDS", "3600"))
    AUTH_AUTOCONFIRM = os.environ.get("AUTH_AUTOCONFIRM", "0") == "1"
    AUTH_ALLOWED_EMAIL_DOMAINS = _csv(os.environ.get("AUTH_ALLOWED_EMAIL_DOMAINS"))
    AUTH_MIN_PASSWORD_LENGTH = int(os.environ.get("AUTH_MIN_PASSWORD_LENGTH", "6"))
    METADATA_PROVIDER = os.environ.get("METADATA_PROVIDER", "microlink")
    METADATA_ENDPOINT = os.environ.get("METADATA_ENDPOINT", "https://api.microlink.io")
    METADATA_FETCH_TIMEOUT = float(os.environ.get("METADATA_FETCH_TIMEOUT", "10"))
    METADATA_MAX_BYTES = int(os.environ.get("METADATA_MAX_BYTES", "2500000"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    STORE_BACKEND = "local"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    AUTH_AUTOCONFIRM = True
    AUTH_ALLOWED_EMAIL_DOMAINS: list[str] = []
    METADATA_PROVIDER = "none"
