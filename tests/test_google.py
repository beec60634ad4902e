from dataclasses import replace
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from secrets_app.app import create_app
from secrets_app.auth.google import GoogleIdentityProvider, IdentityProvider
from secrets_app.auth.strategies import FederatedProfile

GOOGLE_METADATA = {
    "issuer": "https://accounts.example.test",
    "authorization_endpoint": "https://accounts.example.test/o/oauth2/v2/auth",
    "token_endpoint": "https://oauth2.example.test/token",
    "userinfo_endpoint": "https://openidconnect.example.test/v1/userinfo",
}


@pytest.fixture()
def google_settings(settings):
    return replace(
        settings,
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_callback_url="http://testserver/auth/google/secrets",
    )


@pytest.fixture()
def provider(google_settings, monkeypatch):
    provider = GoogleIdentityProvider(google_settings)

    async def metadata():
        return dict(GOOGLE_METADATA)

    # Endpoints come from here instead of Google's discovery document.
    monkeypatch.setattr(provider.client, "load_server_metadata", metadata)
    return provider


@pytest.fixture()
def google_client(google_settings, provider):
    app = create_app(google_settings, identity_provider=provider)
    with TestClient(app) as c:
        yield c


def _callback_request(query: str = "") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/auth/google/secrets",
            "query_string": query.encode(),
            "headers": [],
            "session": {},
        }
    )


def test_identity_provider_requires_both_methods():
    class RedirectOnly(IdentityProvider):
        async def authorize_redirect(self, request):
            return None

    with pytest.raises(TypeError):
        RedirectOnly()


def test_provider_enabled_only_with_full_credentials(settings, google_settings):
    assert not GoogleIdentityProvider(settings).enabled
    assert GoogleIdentityProvider(google_settings).enabled
    assert not GoogleIdentityProvider(replace(google_settings, google_callback_url="")).enabled


@pytest.mark.asyncio
async def test_profile_comes_from_token_userinfo(provider, monkeypatch):
    async def token(request):
        return {"access_token": "t", "userinfo": {"sub": "g-1", "name": "Ann"}}

    monkeypatch.setattr(provider.client, "authorize_access_token", token)
    profile = await provider.fetch_profile(_callback_request())
    assert profile == FederatedProfile(subject="g-1", display_name="Ann")


@pytest.mark.asyncio
async def test_profile_falls_back_to_userinfo_endpoint(provider, monkeypatch):
    async def token(request):
        return {"access_token": "t", "token_type": "Bearer"}

    async def userinfo(**kwargs):
        assert kwargs["token"]["access_token"] == "t"
        return {"sub": "g-2", "name": "Bea"}

    monkeypatch.setattr(provider.client, "authorize_access_token", token)
    monkeypatch.setattr(provider.client, "userinfo", userinfo)
    profile = await provider.fetch_profile(_callback_request())
    assert profile == FederatedProfile(subject="g-2", display_name="Bea")


@pytest.mark.asyncio
async def test_userinfo_without_subject_is_rejected(provider, monkeypatch):
    async def token(request):
        return {"access_token": "t", "userinfo": {"name": "Ann"}}

    monkeypatch.setattr(provider.client, "authorize_access_token", token)
    assert await provider.fetch_profile(_callback_request()) is None


@pytest.mark.asyncio
async def test_denied_consent_is_rejected(provider):
    assert await provider.fetch_profile(_callback_request("error=access_denied")) is None


def test_callback_with_unknown_state_goes_to_login(google_client):
    r = google_client.get("/auth/google/secrets?code=abc&state=forged", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert google_client.get("/submit", follow_redirects=False).headers["location"] == "/login"


def test_google_round_trip_logs_in(google_client, provider, monkeypatch):
    async def fetch_access_token(**kwargs):
        assert kwargs["code"] == "abc"
        return {"access_token": "t", "token_type": "Bearer"}

    async def userinfo(**kwargs):
        return {"sub": "g-42", "name": "Dee"}

    monkeypatch.setattr(provider.client, "fetch_access_token", fetch_access_token)
    monkeypatch.setattr(provider.client, "userinfo", userinfo)

    r = google_client.get("/auth/google", follow_redirects=False)
    assert r.status_code == 302
    location = urlparse(r.headers["location"])
    assert location.netloc == "accounts.example.test"
    query = parse_qs(location.query)
    assert query["client_id"] == ["client-id"]
    assert query["scope"] == ["profile"]
    state = query["state"][0]

    r = google_client.get(f"/auth/google/secrets?code=abc&state={state}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/secrets"

    user = google_client.portal.call(google_client.app.state.users.get_by_google_id, "g-42")
    assert user.username == "Dee"
    assert "Dee" in google_client.get("/secrets").text
