# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secrets_app.errors import DataAccessError
from secrets_app.infra.models import Secret, User


class SecretRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def list_all(self) -> List[str]:
        """Return the text of every secret owned by an existing user, oldest first.

        The listing is shared by all visitors; it is not scoped to the requester.
        """
        stmt = select(Secret.secret).join(User, User.id == Secret.user_id).order_by(Secret.id)
        try:
            async with self._sessions() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise DataAccessError(f"Secret listing failed: {exc}") from exc

    async def add(self, secret: str, user_id: Optional[int]) -> Secret:
        row = Secret(secret=secret, user_id=user_id)
        try:
            async with self._sessions() as db:
                db.add(row)
                await db.commit()
                await db.refresh(row)
        except SQLAlchemyError as exc:
            raise DataAccessError(f"Secret insert failed: {exc}") from exc
        return row
