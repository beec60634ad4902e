# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from secrets_app.config import Settings


def build_hasher(settings: Settings) -> PasswordHasher:
    params: Dict[str, Any] = {}
    if settings.hash_time_cost is not None:
        params["time_cost"] = settings.hash_time_cost
    if settings.hash_memory_cost is not None:
        params["memory_cost"] = settings.hash_memory_cost
    if settings.hash_parallelism is not None:
        params["parallelism"] = settings.hash_parallelism
    return PasswordHasher(**params)


def hash_password(hasher: PasswordHasher, plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return hasher.hash(plain)


def verify_password(hasher: PasswordHasher, hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return hasher.verify(hash_value, plain)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(hasher: PasswordHasher, hash_value: str) -> bool:
    try:
        return hasher.check_needs_rehash(hash_value)
    except InvalidHashError:
        return False
