from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from tripalbum.auth.oauth_client import OAuthClient
from tripalbum.auth.oauth_state import OAuthStateStore
from tripalbum.auth.session_store import SessionStore
from tripalbum.config import Settings, get_settings
from tripalbum.schemas.auth import SessionData


def get_session_store(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionStore:
    return SessionStore.from_request(request, settings)


def get_oauth_state_store(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> OAuthStateStore:
    return OAuthStateStore.from_request(request, settings)


@lru_cache
def get_oauth_client() -> OAuthClient:
    return OAuthClient(get_settings())


@dataclass(frozen=True)
class Authorized:
    session: SessionData


@dataclass(frozen=True)
class Unauthorized:
    reason: str = "Unauthorized"


AuthResult = Authorized | Unauthorized


def authorize(store: SessionStore) -> AuthResult:
    session = store.read()
    if session is None:
        return Unauthorized()
    return Authorized(session=session)


async def require_session(
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionData:
    """Resolve the caller's session or reject the request with 401."""
    match authorize(store):
        case Authorized(session=session):
            return session
        case Unauthorized(reason=reason):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=reason,
            )


# Type aliases for dependency injection
CurrentSession = Annotated[SessionData, Depends(require_session)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
OAuthStateStoreDep = Annotated[OAuthStateStore, Depends(get_oauth_state_store)]
OAuthClientDep = Annotated[OAuthClient, Depends(get_oauth_client)]
