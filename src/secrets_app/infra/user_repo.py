# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Data access for the users table.

Every method owns its own session and transaction. SQLAlchemy errors are
translated into DataAccessError; uniqueness violations on insert into
ConflictError so callers can tell "already exists" apart from "store down".
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secrets_app.errors import ConflictError, DataAccessError
from secrets_app.infra.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def _first(self, column: Any, value: Any) -> Optional[User]:
        try:
            async with self._sessions() as db:
                result = await db.execute(select(User).where(column == value))
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise DataAccessError(f"User lookup failed: {exc}") from exc

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self._first(User.id, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._first(User.email, email)

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        return await self._first(User.google_id, google_id)

    async def _insert(self, user: User) -> User:
        try:
            async with self._sessions() as db:
                db.add(user)
                await db.commit()
                await db.refresh(user)
        except IntegrityError as exc:
            raise ConflictError(f"User already exists: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(f"User insert failed: {exc}") from exc
        logger.info("Created user id=%s", user.id)
        return user

    async def create_local(self, email: str, pwd_hash: str) -> User:
        return await self._insert(User(email=email, pwd_hash=pwd_hash))

    async def create_federated(self, google_id: str, username: Optional[str]) -> User:
        return await self._insert(User(google_id=google_id, username=username))

    async def update_password_hash(self, user_id: int, pwd_hash: str) -> None:
        try:
            async with self._sessions() as db:
                await db.execute(update(User).where(User.id == user_id).values(pwd_hash=pwd_hash))
                await db.commit()
        except SQLAlchemyError as exc:
            raise DataAccessError(f"Password hash update failed: {exc}") from exc
