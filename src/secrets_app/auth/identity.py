# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Any, Optional

from starlette.requests import Request

from secrets_app.auth.session import SessionManager
from secrets_app.errors import DataAccessError
from secrets_app.infra.models import User
from secrets_app.infra.user_repo import UserRepository

logger = logging.getLogger(__name__)

PRINCIPAL_KEY = "principal"


class IdentityResolver:
    """Maps a user to the id kept in the session, and back."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def serialize(self, user: User) -> int:
        return user.id

    async def deserialize(self, value: Any) -> Optional[User]:
        if value is None or isinstance(value, bool):
            return None
        try:
            user_id = int(value)
        except (TypeError, ValueError):
            return None
        try:
            return await self._users.get_by_id(user_id)
        except DataAccessError:
            logger.warning("Could not resolve session principal id=%s", user_id, exc_info=True)
            return None


async def resolve_principal(request: Request, resolver: IdentityResolver) -> Optional[User]:
    """Attach the session's principal (or None) to request.state.user."""
    session = request.scope.get("session") or {}
    stored = session.get(PRINCIPAL_KEY)
    user = await resolver.deserialize(stored) if stored is not None else None
    request.state.user = user
    return user


def login(request: Request, user: User, *, sessions: SessionManager, resolver: IdentityResolver) -> None:
    sessions.rotate(request)
    request.scope["session"][PRINCIPAL_KEY] = resolver.serialize(user)
    request.state.user = user
    logger.info("User id=%s logged in", user.id)


async def logout(request: Request, *, sessions: SessionManager) -> None:
    user = getattr(request.state, "user", None)
    await sessions.invalidate(request)
    request.state.user = None
    if user is not None:
        logger.info("User id=%s logged out", user.id)
