import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with common settings."""
    # Shop-local timezone used for weekday and time-of-day calculations
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE", "Europe/London")

    # Reminder selection windows
    REMINDER_LOOKAHEAD_HOURS = int(os.environ.get("REMINDER_LOOKAHEAD_HOURS", "24"))
    PAYMENT_REMINDER_AGE_DAYS = int(os.environ.get("PAYMENT_REMINDER_AGE_DAYS", "7"))

    # Create missing tables on startup (local development convenience)
    AUTO_CREATE_TABLES = os.environ.get("AUTO_CREATE_TABLES", "false").lower() == "true"

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True
    AUTO_CREATE_TABLES = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


class TestingConfig(Config):
    """Configuration for the test suite (in-memory SQLite)."""
    ENV = "testing"
    DEBUG = False
    TESTING = True
    AUTO_CREATE_TABLES = True
    SHOP_TIMEZONE = "UTC"


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local', 'development' or 'dev' -> LocalConfig
    - 'sandbox', 'staging' or 'stage' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig
    - 'testing' or 'test' -> TestingConfig

    Defaults to LocalConfig if not set or unknown.
    """
    from workshop.db_config import normalize_environment

    return {
        "local": LocalConfig,
        "sandbox": SandboxConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }[normalize_environment()]
