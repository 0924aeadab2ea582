"""
Training Compliance Tracker
Configuration classes for the app factory.

``create_app`` instantiates the selected class, so ``ProductionConfig``
can refuse to start without its secrets:

    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Environment:
    SECRET_KEY, DATABASE_URL, TEST_DATABASE_URL, CORS_ORIGINS, REDIS_URL,
    LOG_LEVEL, LOG_FORMAT, AUDIT_LOG_DEFAULT_LIMIT,
    COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

SQLITE_DEV_URL = f"sqlite:///{os.path.join(basedir, 'instance', 'training_tracker_dev.db')}"
SQLITE_TEST_URL = "sqlite:///:memory:"

POSTGRES_POOL = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 300,
    "pool_timeout": 20,
}


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def _database_url(raw):
    """SQLAlchemy 2 only accepts the ``postgresql://`` scheme."""
    if not raw:
        return None
    if raw.startswith("postgres://"):
        return "postgresql://" + raw[len("postgres://"):]
    return raw


def _engine_options(url):
    # SQLite does not take QueuePool sizing arguments
    return {} if url.startswith("sqlite") else dict(POSTGRES_POOL)


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = dict(POSTGRES_POOL)

    REDIS_URL = os.getenv("REDIS_URL", "")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024

    AUDIT_LOG_DEFAULT_LIMIT = _env_int("AUDIT_LOG_DEFAULT_LIMIT", 100)
    # Completed trainings each employee is expected to hold (dashboard metric)
    COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE = _env_int("COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE", 5)


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(os.getenv("DATABASE_URL")) or SQLITE_DEV_URL
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", SQLITE_TEST_URL)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    AUDIT_LOG_DEFAULT_LIMIT = 100
    COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE = 5


class ProductionConfig(Config):
    """PostgreSQL only; ``DATABASE_URL``, ``SECRET_KEY`` and ``CORS_ORIGINS`` come from the environment."""

    SQLALCHEMY_DATABASE_URI = _database_url(os.getenv("DATABASE_URL"))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        **POSTGRES_POOL,
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
