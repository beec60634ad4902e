# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential strategies.

Both strategies return an AuthResult instead of raising: a bad password is
FAILURE, a store problem is FAULT. The route layer does not need to know
which strategy produced the outcome.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from argon2 import PasswordHasher

from secrets_app.auth.passwords import hash_password, needs_rehash, verify_password
from secrets_app.errors import ConflictError, DataAccessError
from secrets_app.infra.models import User
from secrets_app.infra.user_repo import UserRepository

logger = logging.getLogger(__name__)


class AuthStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    FAULT = "fault"


@dataclass(frozen=True)
class AuthResult:
    status: AuthStatus
    user: Optional[User] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, user: User) -> "AuthResult":
        return cls(AuthStatus.SUCCESS, user=user)

    @classmethod
    def failure(cls) -> "AuthResult":
        return cls(AuthStatus.FAILURE)

    @classmethod
    def fault(cls, error: BaseException) -> "AuthResult":
        return cls(AuthStatus.FAULT, error=error)

    @property
    def ok(self) -> bool:
        return self.status is AuthStatus.SUCCESS


@dataclass(frozen=True)
class LocalCredentials:
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class FederatedProfile:
    """Identity asserted by the external provider after verification."""

    subject: str
    display_name: Optional[str] = None


CredentialsT = TypeVar("CredentialsT")


class Authenticator(ABC, Generic[CredentialsT]):
    name: str = ""

    @abstractmethod
    async def authenticate(self, credentials: CredentialsT) -> AuthResult:
        ...


class LocalAuthenticator(Authenticator[LocalCredentials]):
    name = "local"

    def __init__(self, users: UserRepository, hasher: PasswordHasher) -> None:
        self._users = users
        self._hasher = hasher

    async def authenticate(self, credentials: LocalCredentials) -> AuthResult:
        email = (credentials.email or "").strip()
        password = credentials.password
        if not email or not password:
            return AuthResult.failure()
        try:
            user = await self._users.get_by_email(email)
        except DataAccessError as exc:
            return AuthResult.fault(exc)

        if user is None or not user.pwd_hash:
            return AuthResult.failure()
        if not verify_password(self._hasher, user.pwd_hash, password):
            return AuthResult.failure()

        if needs_rehash(self._hasher, user.pwd_hash):
            await self._rehash(user, password)
        return AuthResult.success(user)

    async def _rehash(self, user: User, password: str) -> None:
        new_hash = hash_password(self._hasher, password)
        try:
            await self._users.update_password_hash(user.id, new_hash)
        except DataAccessError:
            logger.warning("Could not upgrade password hash for user id=%s", user.id, exc_info=True)
            return
        user.pwd_hash = new_hash


class FederatedAuthenticator(Authenticator[FederatedProfile]):
    """Find-or-create a local account for a verified Google identity."""

    name = "google"

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    async def authenticate(self, credentials: FederatedProfile) -> AuthResult:
        subject = (credentials.subject or "").strip() if credentials else ""
        if not subject:
            return AuthResult.failure()
        try:
            user = await self._users.get_by_google_id(subject)
            if user is not None:
                return AuthResult.success(user)
            try:
                user = await self._users.create_federated(subject, credentials.display_name)
            except ConflictError:
                # Lost a race against another first login for this subject.
                logger.info("Federated user for subject already created, re-fetching")
                user = await self._users.get_by_google_id(subject)
                if user is None:
                    return AuthResult.fault(DataAccessError("Federated user vanished after conflict"))
        except DataAccessError as exc:
            return AuthResult.fault(exc)
        return AuthResult.success(user)
