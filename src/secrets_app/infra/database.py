# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Async SQLAlchemy engine and session factory (SQLite or PostgreSQL)."""

from __future__ import annotations

from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from secrets_app.config import Settings
from secrets_app.infra.models import Base


def build_engine(settings: Settings) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.db_echo,
        # SQLite needs check_same_thread=False
        connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    )
    return engine, async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
