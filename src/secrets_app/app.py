# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from secrets_app.auth.google import GoogleIdentityProvider, IdentityProvider
from secrets_app.auth.identity import IdentityResolver, login, logout, resolve_principal
from secrets_app.auth.passwords import build_hasher
from secrets_app.auth.session import MemorySessionStore, SessionManager, SessionStore
from secrets_app.auth.strategies import (
    AuthResult,
    AuthStatus,
    FederatedAuthenticator,
    LocalAuthenticator,
    LocalCredentials,
)
from secrets_app.config import Settings, load_settings
from secrets_app.errors import ConflictError, DataAccessError, SessionError
from secrets_app.infra.database import build_engine, create_schema
from secrets_app.infra.secret_repo import SecretRepository
from secrets_app.infra.user_repo import UserRepository
from secrets_app.permissions import current_user_optional, is_authenticated, require_user
from secrets_app.services.accounts import create_local_account

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

GUEST_NAME = "Guest"

router = APIRouter()


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _render(request: Request, template_name: str, ctx: Optional[dict] = None):
    """TemplateResponse wrapper injecting the current principal."""
    user = current_user_optional(request)
    base_ctx = {
        "current_user": user,
        "google_enabled": request.app.state.identity_provider.enabled,
    }
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})})


def _finish_login(request: Request, result: AuthResult, source: str) -> RedirectResponse:
    """Establish the session on success; every other outcome goes back to /login."""
    if result.status is AuthStatus.FAULT:
        logger.error("%s login failed on store access: %s", source, result.error)
        return _redirect("/login")
    if not result.ok:
        logger.info("%s login rejected", source)
        return _redirect("/login")
    st = request.app.state
    login(request, result.user, sessions=st.sessions, resolver=st.resolver)
    return _redirect("/secrets")


# ------------------ Routes ------------------


@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return _render(request, "home.html")


@router.get("/login", response_class=HTMLResponse)
async def login_get(request: Request):
    if is_authenticated(request):
        return _redirect("/secrets")
    return _render(request, "login.html")


@router.post("/login")
async def login_post(request: Request, username: str = Form(""), password: str = Form("")):
    result = await request.app.state.local_auth.authenticate(LocalCredentials(username, password))
    return _finish_login(request, result, "Local")


@router.get("/auth/google")
async def google_start(request: Request):
    provider: IdentityProvider = request.app.state.identity_provider
    if not provider.enabled:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")
    return await provider.authorize_redirect(request)


@router.get("/auth/google/secrets")
async def google_callback(request: Request):
    provider: IdentityProvider = request.app.state.identity_provider
    if not provider.enabled:
        return _redirect("/login")
    profile = await provider.fetch_profile(request)
    if profile is None:
        return _redirect("/login")

    result = await request.app.state.federated_auth.authenticate(profile)
    return _finish_login(request, result, "Google")


@router.get("/register", response_class=HTMLResponse)
async def register_get(request: Request):
    return _render(request, "register.html")


@router.post("/register")
async def register_post(request: Request, username: str = Form(""), password: str = Form("")):
    if is_authenticated(request):
        return _redirect("/secrets")

    st = request.app.state
    try:
        await create_local_account(st.users, st.hasher, username, password)
    except ValueError:
        logger.info("Registration rejected: missing email or password")
        return _redirect("/register")
    except ConflictError:
        logger.info("Registration rejected: email already registered")
        return _redirect("/register")
    except DataAccessError:
        logger.exception("Registration failed on store access")
        return _redirect("/register")

    result = await st.local_auth.authenticate(LocalCredentials(username, password))
    return _finish_login(request, result, "Post-registration")


@router.get("/secrets", response_class=HTMLResponse)
async def secrets_page(request: Request):
    user = current_user_optional(request)
    try:
        secrets = await request.app.state.secrets.list_all()
    except DataAccessError:
        logger.exception("Could not list secrets")
        secrets = []
    return _render(
        request,
        "secrets.html",
        {
            "user_email": user.email if user else None,
            "username": user.display_name if user else GUEST_NAME,
            "secrets": secrets,
        },
    )


@router.get("/submit", response_class=HTMLResponse)
async def submit_get(request: Request, user=Depends(require_user)):
    return _render(
        request,
        "submit.html",
        {"user_id": user.id, "user_email": user.email, "username": user.display_name},
    )


@router.post("/submit")
async def submit_post(request: Request, secret: str = Form(""), user=Depends(require_user)):
    text = (secret or "").strip()
    if not text:
        logger.info("Empty secret from user id=%s ignored", user.id)
        return _redirect("/secrets")
    try:
        await request.app.state.secrets.add(text, user.id)
    except DataAccessError:
        logger.exception("Could not store secret for user id=%s", user.id)
    return _redirect("/secrets")


@router.get("/logout")
async def logout_get(request: Request):
    await logout(request, sessions=request.app.state.sessions)
    return _redirect("/")


# ------------------ App factory ------------------


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    await create_schema(app.state.engine)
    yield
    await app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    identity_provider: Optional[IdentityProvider] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Secrets", lifespan=_lifespan)

    engine, session_factory = build_engine(settings)
    users = UserRepository(session_factory)
    hasher = build_hasher(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.users = users
    app.state.secrets = SecretRepository(session_factory)
    app.state.hasher = hasher
    app.state.local_auth = LocalAuthenticator(users, hasher)
    app.state.federated_auth = FederatedAuthenticator(users)
    app.state.resolver = IdentityResolver(users)
    app.state.sessions = SessionManager(session_store if session_store is not None else MemorySessionStore(), settings)
    app.state.identity_provider = identity_provider if identity_provider is not None else GoogleIdentityProvider(settings)

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        if request.url.path.startswith("/static/"):
            return await call_next(request)
        st = request.app.state
        await st.sessions.attach(request)
        await resolve_principal(request, st.resolver)
        response = await call_next(request)
        try:
            await st.sessions.commit(request, response)
        except SessionError:
            logger.exception("Could not save session")
            return PlainTextResponse("Session error", status_code=500)
        return response

    @app.exception_handler(SessionError)
    async def _session_error(request: Request, exc: SessionError):
        logger.error("Session fault: %s", exc)
        return PlainTextResponse("Session error", status_code=500)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)
    return app
