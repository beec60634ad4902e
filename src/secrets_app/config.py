# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from sqlalchemy.engine import URL

from secrets_app.errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./secrets_app.db"
TRUTHY = {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    session_secret: str
    database_url: str = DEFAULT_DATABASE_URL
    db_echo: bool = False

    session_cookie_name: str = "secrets_session"
    session_max_age: int = 28800  # 8 hours
    session_salt: str = "secrets_app.session.v1"
    cookie_secure: bool = False

    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = ""
    google_scope: str = "profile"

    # argon2 parameters; None keeps the library default
    hash_time_cost: Optional[int] = None
    hash_memory_cost: Optional[int] = None
    hash_parallelism: Optional[int] = None

    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_callback_url)


def _flag(env: Mapping[str, str], name: str, default: str = "false") -> bool:
    return str(env.get(name, default)).strip().lower() in TRUTHY


def _int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = str(env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _database_url(env: Mapping[str, str]) -> str:
    explicit = str(env.get("DATABASE_URL", "") or "").strip()
    if explicit:
        return explicit
    host = str(env.get("DB_HOST", "") or "").strip()
    if not host:
        return DEFAULT_DATABASE_URL
    url = URL.create(
        "postgresql+asyncpg",
        username=env.get("DB_USER") or None,
        password=env.get("DB_PWD") or None,
        host=host,
        port=_int(env, "DB_PORT", None),
        database=env.get("DB_NAME") or None,
    )
    return url.render_as_string(hide_password=False)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables (os.environ by default)."""
    env = os.environ if environ is None else environ

    secret = env.get("SESSION_SECRET") or env.get("SECRET_KEY")
    if not secret:
        raise ConfigError("Missing SESSION_SECRET (or SECRET_KEY) in environment")

    return Settings(
        session_secret=secret,
        database_url=_database_url(env),
        db_echo=_flag(env, "DB_ECHO"),
        session_cookie_name=env.get("SESSION_COOKIE_NAME", "secrets_session"),
        session_max_age=_int(env, "SESSION_MAX_AGE", 28800),
        session_salt=env.get("SESSION_SALT", "secrets_app.session.v1"),
        cookie_secure=_flag(env, "SESSION_COOKIE_SECURE"),
        google_client_id=env.get("GOOGLE_CLIENT_ID", ""),
        google_client_secret=env.get("GOOGLE_CLIENT_SECRET", ""),
        google_callback_url=env.get("GOOGLE_CALLBACK_URL", ""),
        google_scope=env.get("GOOGLE_SCOPE", "profile"),
        hash_time_cost=_int(env, "SALT_ROUNDS", None),
        hash_memory_cost=_int(env, "HASH_MEMORY_COST", None),
        hash_parallelism=_int(env, "HASH_PARALLELISM", None),
        host=env.get("HOST", "0.0.0.0"),
        port=_int(env, "PORT", 3000),
        reload=_flag(env, "RELOAD"),
    )
