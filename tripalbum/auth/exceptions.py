class AuthError(Exception):
    """Base class for login and session failures.

    ``message`` is short and safe to show to the end user.
    """

    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthExchangeError(AuthError):
    default_message = "Token exchange failed"


class AuthUserInfoError(AuthError):
    default_message = "Failed to fetch user info"


class AuthRefreshError(AuthError):
    default_message = "Token refresh failed"


class SessionDecryptError(AuthError):
    default_message = "Invalid session"


class CsrfStateMismatch(AuthError):
    default_message = "Invalid state parameter"


class MissingPkceVerifier(AuthError):
    default_message = "Missing PKCE verifier"
