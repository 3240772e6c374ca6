"""
proposalhub settings, one class per environment.

    app = create_app("production")   # → config["production"]() is instantiated

Everything deploy-specific comes from the environment:

    DATABASE_URL / TEST_DATABASE_URL   store (SQLite fallback outside production)
    SECRET_KEY, JWT_SECRET_KEY         HS256 signing keys shared with the identity provider
    JWT_ACCESS_EXPIRES                 lifetime of tokens minted by jwt_service (seconds)
    REDIS_URL                          Flask-Limiter storage (memory:// when unset)
    PUBLIC_SITE_URL                    base for view links, pixels and upgrade_url
    PLAN_CACHE_TTL                     plan catalog cache lifetime (seconds)
    TRACKING_RATE_LIMIT                per-IP limit on public tracking beacons
    LOG_LEVEL, LOG_FORMAT              see middleware/logging_config.py
    MAIL_*                             SMTP relay; unset MAIL_SERVER logs instead of sending
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'proposalhub_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Regenerated per process; tokens do not survive a dev restart
_DEV_SECRET = secrets.token_hex(32)

_POOL_OPTIONS = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 300,
    "pool_timeout": 20,
}


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _database_url(raw: str) -> str:
    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = _env_int("JWT_ACCESS_EXPIRES", 3600)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = dict(_POOL_OPTIONS)

    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024
    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_FORMAT = os.getenv("LOG_FORMAT")

    PUBLIC_SITE_URL = os.getenv("PUBLIC_SITE_URL", "http://localhost:5000")
    PLAN_CACHE_TTL = _env_int("PLAN_CACHE_TTL", 300)
    TRACKING_RATE_LIMIT = os.getenv("TRACKING_RATE_LIMIT", "120/minute")

    MAIL_SERVER = os.getenv("MAIL_SERVER")
    MAIL_PORT = _env_int("MAIL_PORT", 587)
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() == "true"
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "proposals@proposalhub.local")


class DevelopmentConfig(Config):
    DEBUG = True
    _raw_db_url = os.getenv("DATABASE_URL", "")
    if _raw_db_url:
        SQLALCHEMY_DATABASE_URI = _database_url(_raw_db_url)
    else:
        SQLALCHEMY_DATABASE_URI = _SQLITE_DEV
        # SQLite's pool takes no sizing options
        SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}


class TestingConfig(Config):
    """In-memory SQLite, fixed secrets, no rate limits, no SMTP."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-at-least-32-bytes"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    MAIL_SERVER = None
    PUBLIC_SITE_URL = "http://testserver"


class ProductionConfig(Config):
    """Refuses to start without DATABASE_URL and SECRET_KEY."""

    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = _database_url(_raw_db_url) if _raw_db_url else None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        **_POOL_OPTIONS,
        "connect_args": {"options": "-c statement_timeout=30000"},
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
