"""
ChangeDesk — IT Change Request Tracker
Per-environment settings, picked by ``create_app`` from ``APP_ENV``.

Everything environment-specific comes from env vars; the classes only
decide defaults. ``ProductionConfig`` is instantiated so that a missing
``DATABASE_URL`` or ``SECRET_KEY`` stops the process at start-up.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'changedesk_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"


def _database_url(env_var: str = "DATABASE_URL", default: str | None = None) -> str | None:
    """Database URL from the environment, with ``postgres://`` spelled as SQLAlchemy expects."""
    raw = os.getenv(env_var, "")
    if not raw:
        return default
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # The session cookie holds the signed-in viewer {id, role, name}
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # "json" or "readable"; unset lets the environment decide
    LOG_FORMAT = os.getenv("LOG_FORMAT", "")

    # Change summaries. Without GEMINI_API_KEY a Gemini model yields the
    # fallback summary; "local-stub" must be chosen explicitly.
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    LLM_DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "gemini-2.5-flash")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "1"))


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(default=_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = _database_url("TEST_DATABASE_URL", default=_SQLITE_TEST)
    RATELIMIT_ENABLED = False
    BCRYPT_ROUNDS = 4  # bcrypt minimum
    GEMINI_API_KEY = ""
    LLM_DEFAULT_CHAT_MODEL = "local-stub"


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SESSION_COOKIE_SECURE = True
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
