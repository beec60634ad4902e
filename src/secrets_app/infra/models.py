# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""ORM models for the users and secrets tables."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class User(Base):
    """An account. Local accounts carry a password hash, federated ones a Google subject."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("pwd_hash IS NOT NULL OR google_id IS NOT NULL", name="ck_users_credential"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), unique=True, nullable=True)
    pwd_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    google_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @property
    def display_name(self) -> str:
        return self.username or self.email or ""

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r}, google_id={self.google_id!r})"


class Secret(Base):
    __tablename__ = "secrets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    secret: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
