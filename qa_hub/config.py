"""
Environment configurations for create_app().

    APP_ENV=development   SQLite under instance/, DEBUG on, colored logs
    APP_ENV=testing       in-memory SQLite, rate limits off
    APP_ENV=production    DATABASE_URL and SECRET_KEY required, JSON logs

create_app() instantiates the selected class, so ProductionConfig can
refuse to start when its required variables are missing.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_LOCAL_DB = "sqlite:///" + os.path.join(basedir, "instance", "qa_testing_hub.db")


def _normalise_db_url(raw: str) -> str:
    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    return raw.replace("postgres://", "postgresql://", 1)


def _database_url(fallback):
    raw = os.getenv("DATABASE_URL", "")
    return _normalise_db_url(raw) if raw else fallback


class Config:
    APP_VERSION = "1.0.0"
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Flask-Limiter counts in Redis when REDIS_URL is set
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    REPORT_RATE_LIMIT = os.getenv("REPORT_RATE_LIMIT", "20/minute")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Bodies above this are answered with 413
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024

    # Upper bounds for list endpoints
    REPORT_LIST_LIMIT = 50
    DASHBOARD_LIST_LIMIT = 10
    TREND_DAYS_LIMIT = 30


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_LOCAL_DB)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url(None)
    # No wildcard origin in production
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        missing = []
        if not self.SQLALCHEMY_DATABASE_URI:
            missing.append("DATABASE_URL")
        if not os.getenv("SECRET_KEY"):
            missing.append("SECRET_KEY")
        if missing:
            raise RuntimeError(f"Production config needs {', '.join(missing)} set in the environment")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
