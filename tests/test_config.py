"""Tests for settings parsing."""

import pytest
from pydantic import ValidationError

from user_registry.config import Settings, normalize_database_url, parse_comma_list
from user_registry.services.validation import STANDARD_POLICY, STRICT_POLICY


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "CORS_ORIGINS", "VALIDATION_PROFILE", "BCRYPT_ROUNDS", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_parse_comma_list():
    assert parse_comma_list(None, ["*"]) == ["*"]
    assert parse_comma_list(["a"], []) == ["a"]
    assert parse_comma_list(" a, b ,,c ", []) == ["a", "b", "c"]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql://u:p@h:5432/db", "postgresql+asyncpg://u:p@h:5432/db"),
        ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("sqlite:///./registry.db", "sqlite+aiosqlite:///./registry.db"),
        ("  sqlite:///x.db  ", "sqlite+aiosqlite:///x.db"),
    ],
)
def test_normalize_database_url(raw, expected):
    assert normalize_database_url(raw) == expected


def test_defaults(clean_env):
    config = Settings(_env_file=None)

    assert config.port == 5000
    assert config.bcrypt_rounds == 12
    assert config.validation_profile == "standard"
    assert config.validation_policy is STANDARD_POLICY
    assert config.cors_origins == ["*"]
    assert config.db_pool_max == 5
    assert config.db_pool_idle_timeout == 10


def test_database_url_from_parameters(clean_env):
    clean_env.setenv("DB_HOST", "db.internal")
    clean_env.setenv("DB_PORT", "6543")
    clean_env.setenv("DB_NAME", "accounts")
    clean_env.setenv("DB_USER", "svc")
    clean_env.setenv("DB_PASSWORD", "pw")

    config = Settings(_env_file=None)

    assert config.database_url == "postgresql+asyncpg://svc:pw@db.internal:6543/accounts"
    assert config.is_sqlite is False


def test_database_url_env_wins(clean_env):
    clean_env.setenv("DB_HOST", "ignored")
    clean_env.setenv("DATABASE_URL", "sqlite:///./dev.db")

    config = Settings(_env_file=None)

    assert config.database_url == "sqlite+aiosqlite:///./dev.db"
    assert config.is_sqlite is True


def test_environment_aliases(clean_env):
    clean_env.delenv("ENVIRONMENT", raising=False)
    clean_env.setenv("ENV", "production")

    config = Settings(_env_file=None)
    assert config.environment == "production"
    assert config.is_production is True


def test_cors_origins_parsed(clean_env):
    clean_env.setenv("CORS_ORIGINS", "http://localhost:3000, https://app.example.com")
    config = Settings(_env_file=None)
    assert config.cors_origins == ["http://localhost:3000", "https://app.example.com"]


def test_strict_profile_selected(clean_env):
    clean_env.setenv("VALIDATION_PROFILE", "strict")
    assert Settings(_env_file=None).validation_policy is STRICT_POLICY


@pytest.mark.parametrize(
    "name,value",
    [
        ("VALIDATION_PROFILE", "lenient"),
        ("BCRYPT_ROUNDS", "3"),
        ("DB_POOL_MAX", "0"),
    ],
)
def test_invalid_values_rejected(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
