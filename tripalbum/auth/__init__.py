"""Login (OAuth2 authorization code + PKCE) and encrypted cookie sessions."""

from tripalbum.auth.dependencies import CurrentSession, require_session
from tripalbum.auth.exceptions import (
    AuthError,
    AuthExchangeError,
    AuthRefreshError,
    AuthUserInfoError,
    CsrfStateMismatch,
    MissingPkceVerifier,
    SessionDecryptError,
)
from tripalbum.auth.guard import AccessGuardMiddleware, AccessRules
from tripalbum.auth.oauth_client import OAuthClient
from tripalbum.auth.oauth_state import OAuthStateStore, PendingAuthState
from tripalbum.auth.session_codec import SessionCodec
from tripalbum.auth.session_store import SessionStore

__all__ = [
    "AccessGuardMiddleware",
    "AccessRules",
    "AuthError",
    "AuthExchangeError",
    "AuthRefreshError",
    "AuthUserInfoError",
    "CsrfStateMismatch",
    "CurrentSession",
    "MissingPkceVerifier",
    "OAuthClient",
    "OAuthStateStore",
    "PendingAuthState",
    "SessionCodec",
    "SessionDecryptError",
    "SessionStore",
    "require_session",
]
