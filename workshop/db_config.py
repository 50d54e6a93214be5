"""Database configuration for the local, sandbox, production and testing environments."""
import os

# Environment variable(s) holding the database URL for each hosted environment
HOSTED_DATABASE_URL_VARS = {
    "sandbox": ("SANDBOX_DATABASE_URL",),
    "production": ("PRODUCTION_DATABASE_URL", "DATABASE_URL"),
}

ENVIRONMENT_ALIASES = {
    "local": "local", "development": "local", "dev": "local",
    "sandbox": "sandbox", "staging": "sandbox", "stage": "sandbox",
    "production": "production", "prod": "production",
    "testing": "testing", "test": "testing",
}


def get_database_engine_options():
    """Pool and connection options for hosted PostgreSQL."""
    from sqlalchemy.pool import QueuePool

    return {
        "pool_pre_ping": True,        # Detect and refresh dead connections before use
        "pool_recycle": 280,
        "pool_size": 5,               # A single shop has a handful of concurrent staff users
        "max_overflow": 10,
        "pool_timeout": 30,
        "poolclass": QueuePool,
        "connect_args": {
            "sslmode": "require",
            "connect_timeout": 10,
            "application_name": "workshop_scheduler",
            "options": "-c statement_timeout=30000"  # 30s max per SQL statement
        },
    }


def normalize_environment(environment=None) -> str:
    """Map an environment name or alias to local/sandbox/production/testing (default local)."""
    if environment is None:
        environment = os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    return ENVIRONMENT_ALIASES.get(str(environment).lower(), "local")


def get_hosted_database_url(environment: str) -> str:
    """
    Database URL of a hosted environment.

    Raises:
        ValueError: If none of the environment's URL variables is set
    """
    names = HOSTED_DATABASE_URL_VARS[environment]
    database_url = next((os.environ[name] for name in names if os.environ.get(name)), None)
    if not database_url:
        raise ValueError(f"{' or '.join(names)} must be set for {environment} environment")

    if database_url.startswith("postgres://"):
        # SQLAlchemy expects postgresql://
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def get_database_config(environment=None):
    """Get database configuration based on environment.

    Returns:
        tuple: (database_uri, engine_options); engine_options is None for SQLite
    """
    environment = normalize_environment(environment)

    if environment == "testing":
        return "sqlite:///:memory:", None
    if environment == "local":
        return os.environ.get("LOCAL_DATABASE_URL") or "sqlite:///workshop.sqlite", None
    return get_hosted_database_url(environment), get_database_engine_options()


def configure_database(app, environment=None):
    """Configure database settings for the Flask app.

    A SQLALCHEMY_DATABASE_URI already present on the app config (e.g. from
    test overrides) wins over the environment's URL.

    Args:
        app: Flask application instance
        environment: Optional environment name; defaults to the app's ENV
    """
    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
        return

    database_uri, engine_options = get_database_config(environment or app.config.get("ENV"))

    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("SQLALCHEMY_ECHO", False)  # Set to True for SQL query debugging
    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options
