import pytest

from secrets_app.config import DEFAULT_DATABASE_URL, load_settings
from secrets_app.errors import ConfigError


def test_missing_session_secret_is_an_error():
    with pytest.raises(ConfigError):
        load_settings({})


def test_secret_key_fallback_and_defaults():
    s = load_settings({"SECRET_KEY": "abc"})
    assert s.session_secret == "abc"
    assert s.database_url == DEFAULT_DATABASE_URL
    assert s.session_max_age == 28800
    assert s.port == 3000
    assert s.google_scope == "profile"
    assert not s.google_enabled
    assert s.hash_time_cost is None


def test_database_url_composed_from_parts():
    s = load_settings(
        {
            "SESSION_SECRET": "abc",
            "DB_USER": "app",
            "DB_PWD": "pw",
            "DB_HOST": "db.local",
            "DB_PORT": "5433",
            "DB_NAME": "secrets",
        }
    )
    assert s.database_url == "postgresql+asyncpg://app:pw@db.local:5433/secrets"


def test_explicit_database_url_wins():
    s = load_settings({"SESSION_SECRET": "abc", "DATABASE_URL": "sqlite+aiosqlite:///x.db", "DB_HOST": "db"})
    assert s.database_url == "sqlite+aiosqlite:///x.db"


def test_bad_integer_names_the_variable():
    with pytest.raises(ConfigError, match="SALT_ROUNDS"):
        load_settings({"SESSION_SECRET": "abc", "SALT_ROUNDS": "ten"})


def test_google_enabled_needs_all_three_values():
    env = {
        "SESSION_SECRET": "abc",
        "GOOGLE_CLIENT_ID": "id",
        "GOOGLE_CLIENT_SECRET": "secret",
    }
    assert not load_settings(env).google_enabled
    env["GOOGLE_CALLBACK_URL"] = "http://localhost:3000/auth/google/secrets"
    s = load_settings(env)
    assert s.google_enabled
    assert s.cookie_secure is False


def test_flags_and_hash_parameters():
    s = load_settings(
        {"SESSION_SECRET": "abc", "SESSION_COOKIE_SECURE": "yes", "SALT_ROUNDS": "3", "PORT": "8080"}
    )
    assert s.cookie_secure is True
    assert s.hash_time_cost == 3
    assert s.port == 8080
