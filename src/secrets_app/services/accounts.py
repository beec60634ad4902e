# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher

from secrets_app.auth.passwords import hash_password
from secrets_app.infra.models import User
from secrets_app.infra.user_repo import UserRepository


async def create_local_account(users: UserRepository, hasher: PasswordHasher, email: str, password: str) -> User:
    """Create a password account.

    Raises ValueError for an empty email or password, ConflictError when the
    email is taken and DataAccessError when the store fails.
    """
    e = (email or "").strip()
    if not e:
        raise ValueError("Empty email")
    return await users.create_local(e, hash_password(hasher, password))
