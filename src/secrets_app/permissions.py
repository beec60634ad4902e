# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from fastapi import HTTPException, Request

from secrets_app.config import Settings

if TYPE_CHECKING:
    from secrets_app.infra.models import User

LOGIN_URL = "/login"


def current_user_optional(request: Request) -> Optional["User"]:
    """Principal resolved for this request by the session middleware, if any."""
    return getattr(request.state, "user", None)


def is_authenticated(request: Request) -> bool:
    return current_user_optional(request) is not None


def require_user(request: Request) -> "User":
    u = current_user_optional(request)
    if u is not None:
        return u
    raise HTTPException(status_code=303, headers={"Location": LOGIN_URL})


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}
