import logging
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.auth.dependencies import (
    OAuthClientDep,
    OAuthStateStoreDep,
    SessionStoreDep,
)
from tripalbum.auth.exceptions import (
    AuthError,
    AuthRefreshError,
    CsrfStateMismatch,
    MissingPkceVerifier,
)
from tripalbum.auth.oauth_client import OAuthClient
from tripalbum.auth.oauth_state import OAuthStateStore, PendingAuthState
from tripalbum.auth.redirects import sanitize_return_path
from tripalbum.auth.session_store import now_ms
from tripalbum.config import Settings, get_settings
from tripalbum.database import get_db
from tripalbum.schemas.auth import LogoutResponse, SessionData, SessionResponse
from tripalbum.services.user_service import UserService

logger = logging.getLogger(__name__)

# Browser-facing login flow, mounted at the site root
router = APIRouter(tags=["Authentication"])
# JSON endpoints, mounted under /api/v1
session_router = APIRouter(prefix="/auth", tags=["Authentication"])

SettingsDep = Annotated[Settings, Depends(get_settings)]


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(url=location, status_code=status.HTTP_302_FOUND)


def _error_redirect(settings: Settings, message: str) -> RedirectResponse:
    return _redirect(f"{settings.home_path}?{urlencode({'error': message})}")


def _start_login(
    settings: Settings,
    oauth_client: OAuthClient,
    state_store: OAuthStateStore,
    redirect: str | None,
) -> RedirectResponse:
    if not settings.oauth_configured:
        logger.error("Login attempted but S-Auth is not configured")
        return _error_redirect(settings, "Sign-in is not configured")

    auth_request = oauth_client.build_authorization_url()
    response = _redirect(auth_request.url)
    state_store.store(
        response,
        auth_request.state,
        auth_request.verifier,
        return_to=sanitize_return_path(redirect),
    )
    return response


@router.get("/login")
async def login(
    settings: SettingsDep,
    session_store: SessionStoreDep,
    state_store: OAuthStateStoreDep,
    oauth_client: OAuthClientDep,
    redirect: str | None = None,
) -> RedirectResponse:
    if session_store.read() is not None:
        return _redirect(settings.landing_path)

    return _start_login(settings, oauth_client, state_store, redirect)


@router.get("/sso")
async def sso(
    settings: SettingsDep,
    state_store: OAuthStateStoreDep,
    oauth_client: OAuthClientDep,
    redirect: str | None = None,
) -> RedirectResponse:
    """Start a login even when a (possibly stale) session cookie is present."""
    return _start_login(settings, oauth_client, state_store, redirect)


async def _complete_login(
    db: AsyncSession,
    oauth_client: OAuthClient,
    pending: PendingAuthState,
    code: str | None,
    state: str | None,
    error: str | None,
    error_description: str | None,
) -> SessionData:
    if error:
        raise AuthError(error_description or error)

    if not code or not state:
        raise AuthError("Missing authorization code or state")

    if pending.state is None or state != pending.state:
        raise CsrfStateMismatch()

    if not pending.verifier:
        raise MissingPkceVerifier()

    tokens = await oauth_client.exchange_code_for_tokens(code, pending.verifier)
    user_info = await oauth_client.get_user_info(tokens.access_token)

    user_service = UserService(db)
    user, is_new = await user_service.upsert_from_userinfo(user_info)
    await db.commit()

    if is_new:
        logger.info(f"Created user {user.id} on first login")

    return SessionData(
        user_id=user_info.sub,
        email=user_info.email,
        name=user_info.display_name,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_at=now_ms() + tokens.expires_in * 1000,
    )


@router.get("/auth/callback")
async def auth_callback(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    session_store: SessionStoreDep,
    state_store: OAuthStateStoreDep,
    oauth_client: OAuthClientDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse:
    # Consume the pending login before anything else so it can never be replayed
    pending = state_store.retrieve_and_clear()

    try:
        session = await _complete_login(
            db, oauth_client, pending, code, state, error, error_description
        )
    except AuthError as e:
        logger.warning(f"Login callback rejected: {e.message}")
        response = _error_redirect(settings, e.message)
    except SQLAlchemyError:
        logger.exception("Failed to store user during login callback")
        await db.rollback()
        response = _error_redirect(settings, "Authentication failed")
    else:
        response = _redirect(pending.return_to or settings.landing_path)
        session_store.create(response, session)

    state_store.clear(response)
    return response


@router.get("/logout")
async def logout_redirect(
    settings: SettingsDep,
    session_store: SessionStoreDep,
) -> RedirectResponse:
    response = _redirect(settings.login_path)
    session_store.destroy(response)
    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(session_store: SessionStoreDep) -> JSONResponse:
    response = JSONResponse(LogoutResponse().model_dump())
    session_store.destroy(response)
    return response


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": detail})


@router.post("/auth/refresh", response_model=SessionResponse)
async def refresh_session(
    session_store: SessionStoreDep,
    oauth_client: OAuthClientDep,
) -> JSONResponse:
    """
    Trade the session's refresh token for a new access token.

    Works on sessions inside the expiry buffer, which regular reads treat as
    logged out. A failed refresh ends the session.
    """
    session = session_store.read(include_expiring=True)
    if session is None:
        return _unauthorized("Unauthorized")

    if not session.refresh_token:
        response = _unauthorized("Session cannot be refreshed")
        session_store.destroy(response)
        return response

    try:
        tokens = await oauth_client.refresh_access_token(session.refresh_token)
    except AuthRefreshError as e:
        logger.warning(f"Refresh failed for user {session.user_id}: {e.message}")
        response = _unauthorized(e.message)
        session_store.destroy(response)
        return response

    refreshed = session.model_copy(
        update={
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token or session.refresh_token,
            "expires_at": now_ms() + tokens.expires_in * 1000,
        }
    )
    response = JSONResponse(SessionResponse(user=refreshed.public_view()).model_dump())
    session_store.create(response, refreshed)
    return response


@session_router.get("/session", response_model=SessionResponse)
async def get_session(session_store: SessionStoreDep) -> SessionResponse:
    return SessionResponse(user=session_store.read_public_view())
