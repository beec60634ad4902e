import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from secrets_app.app import create_app
from secrets_app.auth.google import IdentityProvider
from secrets_app.auth.passwords import build_hasher
from secrets_app.auth.session import MemorySessionStore
from secrets_app.auth.strategies import FederatedProfile
from secrets_app.config import Settings
from secrets_app.infra.database import build_engine, create_schema
from secrets_app.infra.user_repo import UserRepository


class FakeIdentityProvider(IdentityProvider):
    """Stands in for Google: the callback yields whatever profile the test sets."""

    enabled = True

    def __init__(self, profile: Optional[FederatedProfile] = None) -> None:
        self.profile = profile
        self.redirects = 0

    async def authorize_redirect(self, request):
        self.redirects += 1
        request.session["oauth_state"] = "state-123"
        return RedirectResponse(url="https://accounts.example.test/o/oauth2/auth?state=state-123", status_code=302)

    async def fetch_profile(self, request):
        return self.profile


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # Cheap argon2 parameters keep the suite fast.
    return Settings(
        session_secret="test-session-secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'secrets.db'}",
        hash_time_cost=1,
        hash_memory_cost=8,
        hash_parallelism=1,
    )


@pytest.fixture()
def hasher(settings: Settings):
    return build_hasher(settings)


@pytest_asyncio.fixture()
async def session_factory(settings: Settings):
    engine, factory = build_engine(settings)
    await create_schema(engine)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture()
async def users(session_factory) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture()
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture()
def client(settings, identity_provider, session_store):
    app = create_app(settings, identity_provider=identity_provider, session_store=session_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def run_async(client):
    """Run a coroutine function on the client's event loop (where the app's engine lives)."""

    def _run(fn, *args):
        return client.portal.call(fn, *args)

    return _run
