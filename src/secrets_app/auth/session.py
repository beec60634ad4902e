# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Server-side sessions.

The client only ever holds an opaque session key, signed with itsdangerous.
Session data lives in a SessionStore and is exposed to handlers as
``request.session`` (a plain dict in ``request.scope["session"]``).

Nothing is stored and no cookie is issued until a handler actually puts
something in the session.
"""

from __future__ import annotations

import copy
import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from starlette.requests import Request
from starlette.responses import Response

from secrets_app.config import Settings
from secrets_app.errors import SessionError
from secrets_app.permissions import cookie_settings

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    @abstractmethod
    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the data stored under key, or None if missing/expired."""

    @abstractmethod
    async def save(self, key: str, data: Dict[str, Any], max_age: int) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class MemorySessionStore(SessionStore):
    """Process-local store with per-entry expiry. Sessions die with the process."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, data = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return copy.deepcopy(data)

    async def save(self, key: str, data: Dict[str, Any], max_age: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (now + max_age, copy.deepcopy(data))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    def __len__(self) -> int:
        return len(self._entries)


class SessionCookieSigner:
    def __init__(self, secret: str, salt: str) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=salt)

    def sign(self, key: str) -> str:
        return self._serializer.dumps({"k": key})

    def unsign(self, token: str, *, max_age: int) -> Optional[str]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=max_age)
        except (BadSignature, BadTimeSignature):
            return None
        key = str((data or {}).get("k") or "").strip() if isinstance(data, dict) else ""
        return key or None


@dataclass
class _SessionContext:
    key: Optional[str]
    snapshot: Dict[str, Any] = field(default_factory=dict)
    rotate: bool = False
    cleared: bool = False
    # request carried a cookie naming no live session
    stale_cookie: bool = False


def _context(request: Request) -> _SessionContext:
    ctx = getattr(request.state, "session_ctx", None)
    if ctx is None:
        raise RuntimeError("Session not attached to request")
    return ctx


class SessionManager:
    def __init__(self, store: SessionStore, settings: Settings) -> None:
        self.store = store
        self.cookie_name = settings.session_cookie_name
        self.max_age = settings.session_max_age
        self._cookie_flags = cookie_settings(settings)
        self._signer = SessionCookieSigner(settings.session_secret, settings.session_salt)

    async def attach(self, request: Request) -> Dict[str, Any]:
        """Load the session named by the request cookie into request.scope["session"]."""
        token = request.cookies.get(self.cookie_name, "")
        key = self._signer.unsign(token, max_age=self.max_age)
        data: Optional[Dict[str, Any]] = None
        if key:
            try:
                data = await self.store.load(key)
            except Exception:
                # Unreadable session: carry on as anonymous.
                logger.warning("Session load failed, continuing without session", exc_info=True)
                data = None
        if data is None:
            key, data = None, {}

        request.scope["session"] = data
        request.state.session_ctx = _SessionContext(
            key=key, snapshot=copy.deepcopy(data), stale_cookie=bool(token) and key is None
        )
        return data

    def rotate(self, request: Request) -> None:
        """Store the session under a fresh key at commit time; the old key is dropped."""
        _context(request).rotate = True

    async def invalidate(self, request: Request) -> None:
        ctx = _context(request)
        if ctx.key:
            try:
                await self.store.delete(ctx.key)
            except SessionError:
                raise
            except Exception as exc:
                raise SessionError(f"Could not invalidate session: {exc}") from exc
        request.scope["session"].clear()
        ctx.key = None
        ctx.snapshot = {}
        ctx.rotate = False
        ctx.cleared = True

    async def commit(self, request: Request, response: Response) -> None:
        ctx = _context(request)
        data = request.scope.get("session") or {}

        if not data:
            if ctx.key:
                await self._delete(ctx.key)
            if ctx.key or ctx.cleared or ctx.stale_cookie:
                response.delete_cookie(self.cookie_name, httponly=True, samesite="lax")
            return

        if data == ctx.snapshot and not ctx.rotate:
            return

        key = ctx.key
        if ctx.rotate and key:
            await self._delete(key)
            key = None
        if key is None:
            key = secrets.token_urlsafe(32)

        try:
            await self.store.save(key, data, self.max_age)
        except SessionError:
            raise
        except Exception as exc:
            raise SessionError(f"Could not persist session: {exc}") from exc

        ctx.key = key
        response.set_cookie(self.cookie_name, self._signer.sign(key), max_age=self.max_age, **self._cookie_flags)

    async def _delete(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except SessionError:
            raise
        except Exception as exc:
            raise SessionError(f"Could not delete session: {exc}") from exc
