#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from secrets_app.auth.passwords import build_hasher
from secrets_app.config import load_settings
from secrets_app.errors import ConflictError
from secrets_app.infra.database import build_engine, create_schema
from secrets_app.infra.user_repo import UserRepository
from secrets_app.services.accounts import create_local_account


async def _create(email: str, password: str) -> int:
    settings = load_settings()
    engine, session_factory = build_engine(settings)
    try:
        await create_schema(engine)
        user = await create_local_account(UserRepository(session_factory), build_hasher(settings), email, password)
        return user.id
    finally:
        await engine.dispose()


def main() -> None:
    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user_id = asyncio.run(_create(email, pw1))
    except ConflictError:
        raise SystemExit(f"A user with email {email} already exists")
    except ValueError as exc:
        raise SystemExit(str(exc))
    print(f"OK -> user id {user_id}")


if __name__ == "__main__":
    main()
