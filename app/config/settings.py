"""Application configuration classes.

Supports multiple environments via class inheritance.
DATABASE_URL can be set via environment variable; defaults to SQLite for local dev.
Accounting settings can be tuned per deployment through environment variables.
"""

import os


class BaseConfig:
    """Base configuration shared across all environments."""

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    RESTX_MASK_SWAGGER = False

    # --- Accounting engine ---
    MIN_REVISION_FEEDBACK_LENGTH = int(os.getenv("MIN_REVISION_FEEDBACK_LENGTH", "10"))
    EXPIRY_WARNING_DAYS = int(os.getenv("EXPIRY_WARNING_DAYS", "7"))
    PERSISTENCE_RETRY_ATTEMPTS = int(os.getenv("PERSISTENCE_RETRY_ATTEMPTS", "3"))
    DEFAULT_BASE_CREDIT_COST = 1
    DEFAULT_PRIORITY_COSTS = {"low": 0, "medium": 1, "high": 2}
    MAX_REQUEST_CREDIT_COST = int(os.getenv("MAX_REQUEST_CREDIT_COST", "100000"))


class DevelopmentConfig(BaseConfig):
    """Development configuration — SQLite fallback for local testing."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///dev.db",
    )


class TestingConfig(BaseConfig):
    """Testing configuration — in-memory SQLite for fast tests."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    MIN_REVISION_FEEDBACK_LENGTH = 10
    EXPIRY_WARNING_DAYS = 7
    PERSISTENCE_RETRY_ATTEMPTS = 3


class ProductionConfig(BaseConfig):
    """Production configuration — requires DATABASE_URL to be set."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "")


CONFIG_MAP = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_setting(name: str, default=None):
    """Read a setting from the active Flask app, falling back to BaseConfig.

    Domain code runs both inside request handlers and in plain unit tests,
    so it cannot assume an application context is pushed.
    """
    from flask import current_app, has_app_context

    if has_app_context():
        return current_app.config.get(name, getattr(BaseConfig, name, default))
    return getattr(BaseConfig, name, default)
