# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Google OAuth 2.0 sign-in through authlib's Starlette client."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from authlib.integrations.starlette_client import OAuth, OAuthError
from starlette.requests import Request
from starlette.responses import Response

from secrets_app.auth.strategies import FederatedProfile
from secrets_app.config import Settings

logger = logging.getLogger(__name__)

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"


class IdentityProvider(ABC):
    """External identity verification: redirect out, then read back a verified profile."""

    enabled: bool = False

    @abstractmethod
    async def authorize_redirect(self, request: Request) -> Response:
        ...

    @abstractmethod
    async def fetch_profile(self, request: Request) -> Optional[FederatedProfile]:
        """Verified profile from the callback request, or None when sign-in was rejected."""


class GoogleIdentityProvider(IdentityProvider):
    def __init__(self, settings: Settings) -> None:
        self.enabled = settings.google_enabled
        self._callback_url = settings.google_callback_url
        self._oauth = OAuth()
        if self.enabled:
            self._oauth.register(
                name="google",
                client_id=settings.google_client_id,
                client_secret=settings.google_client_secret,
                server_metadata_url=GOOGLE_DISCOVERY_URL,
                client_kwargs={"scope": settings.google_scope},
            )

    @property
    def client(self) -> Any:
        return self._oauth.google

    async def authorize_redirect(self, request: Request) -> Response:
        return await self.client.authorize_redirect(request, self._callback_url)

    async def fetch_profile(self, request: Request) -> Optional[FederatedProfile]:
        try:
            token = await self.client.authorize_access_token(request)
            info = token.get("userinfo") or await self.client.userinfo(token=token)
        except OAuthError as exc:
            logger.info("Google sign-in rejected: %s", exc.error)
            return None

        subject = str((info or {}).get("sub") or "").strip()
        if not subject:
            logger.warning("Google userinfo without subject")
            return None
        return FederatedProfile(subject=subject, display_name=info.get("name"))
