import pytest
from pydantic import ValidationError

from tokenstore.core.config import ModeEnum, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("ASYNC_DATABASE_URI", raising=False)
    settings = Settings(_env_file=None)

    assert settings.REFRESH_TOKEN_EXPIRE_DAYS == 7
    assert settings.REFRESH_TOKEN_BYTES == 48
    assert settings.TOKEN_CLEANUP_INTERVAL_SECONDS == 3600
    assert settings.MODE == ModeEnum.production


def test_database_uri_is_assembled_from_parts(monkeypatch):
    monkeypatch.delenv("ASYNC_DATABASE_URI", raising=False)
    monkeypatch.setenv("MODE", "development")
    monkeypatch.setenv("DATABASE_HOST", "db.internal")
    monkeypatch.setenv("DATABASE_NAME", "conduit")

    uri = str(Settings(_env_file=None).ASYNC_DATABASE_URI)

    assert uri.startswith("postgresql+asyncpg://")
    assert "db.internal:5432/conduit" in uri
    assert "ssl=require" not in uri


def test_production_uri_requires_ssl(monkeypatch):
    monkeypatch.delenv("ASYNC_DATABASE_URI", raising=False)
    monkeypatch.setenv("MODE", "production")

    assert "ssl=require" in str(Settings(_env_file=None).ASYNC_DATABASE_URI)


def test_explicit_uri_wins(monkeypatch):
    monkeypatch.setenv("ASYNC_DATABASE_URI", "sqlite+aiosqlite:///./dev.db")

    assert Settings(_env_file=None).ASYNC_DATABASE_URI == "sqlite+aiosqlite:///./dev.db"


def test_expiry_is_configurable(monkeypatch):
    monkeypatch.setenv("REFRESH_TOKEN_EXPIRE_DAYS", "30")

    assert Settings(_env_file=None).REFRESH_TOKEN_EXPIRE_DAYS == 30


@pytest.mark.parametrize("name,value", [
    ("REFRESH_TOKEN_EXPIRE_DAYS", "0"),
    ("REFRESH_TOKEN_BYTES", "8"),
    ("REFRESH_TOKEN_BYTES", "512"),
])
def test_rejects_unsafe_token_settings(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
