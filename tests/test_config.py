"""
Tests for environment selection, database configuration and operation logging.
"""
import pytest
import structlog

from workshop.config import LocalConfig, ProductionConfig, SandboxConfig, TestingConfig, get_config
from workshop.db_config import configure_database, get_database_config, normalize_environment
from workshop.logging_config import SchedulingOperation


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FLASK_ENV", "ENVIRONMENT", "LOCAL_DATABASE_URL", "SANDBOX_DATABASE_URL",
                 "PRODUCTION_DATABASE_URL", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)


# ==============================================================================
# ENVIRONMENT SELECTION TESTS
# ==============================================================================

class TestEnvironmentSelection:

    @pytest.mark.parametrize("value,expected", [
        ("dev", LocalConfig),
        ("staging", SandboxConfig),
        ("PROD", ProductionConfig),
        ("test", TestingConfig),
        ("something-else", LocalConfig),
    ])
    def test_get_config(self, monkeypatch, value, expected):
        monkeypatch.setenv("FLASK_ENV", value)
        assert get_config() is expected

    def test_defaults_to_local(self):
        assert get_config() is LocalConfig
        assert normalize_environment() == "local"


# ==============================================================================
# DATABASE CONFIG TESTS
# ==============================================================================

class TestDatabaseConfig:

    def test_testing_uses_memory(self):
        assert get_database_config("testing") == ("sqlite:///:memory:", None)

    def test_local_default(self):
        assert get_database_config("local") == ("sqlite:///workshop.sqlite", None)

    def test_production_rewrites_postgres_scheme(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://user:pw@db/shop")

        uri, options = get_database_config("production")

        assert uri == "postgresql://user:pw@db/shop"
        assert options["pool_pre_ping"] is True

    def test_sandbox_requires_url(self):
        with pytest.raises(ValueError):
            get_database_config("sandbox")

    def test_existing_uri_wins(self):
        class FakeApp:
            config = {"SQLALCHEMY_DATABASE_URI": "sqlite:///other.sqlite", "ENV": "production"}

        configure_database(FakeApp)

        assert FakeApp.config["SQLALCHEMY_DATABASE_URI"] == "sqlite:///other.sqlite"
        assert "SQLALCHEMY_ENGINE_OPTIONS" not in FakeApp.config


# ==============================================================================
# SCHEDULING OPERATION TESTS
# ==============================================================================

class TestSchedulingOperation:

    def test_binds_and_resets_context(self):
        with SchedulingOperation("book_slot", operation_id="abc123", job_id=1) as operation:
            assert operation.operation_id == "abc123"
            assert structlog.contextvars.get_contextvars()["operation_id"] == "abc123"

        assert "operation_id" not in structlog.contextvars.get_contextvars()

    def test_does_not_swallow_exceptions(self):
        with pytest.raises(RuntimeError):
            with SchedulingOperation("delete_job"):
                raise RuntimeError("boom")

        assert "operation" not in structlog.contextvars.get_contextvars()
