"""Route-level access guard.

Runs before any handler and looks only at whether a ``session`` cookie is
present, never at its contents. Handlers still validate the session through
:class:`~tripalbum.auth.session_store.SessionStore`, so a request can pass the
guard and be rejected later when its cookie is corrupt or expired.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from tripalbum.auth.session_store import SESSION_COOKIE_NAME
from tripalbum.config import Settings

logger = logging.getLogger(__name__)

STATIC_ASSET_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico")


@dataclass(frozen=True)
class AccessRules:
    protected_prefixes: tuple[str, ...]
    auth_prefixes: tuple[str, ...]
    login_path: str = "/login"
    landing_path: str = "/trips"
    cookie_name: str = SESSION_COOKIE_NAME

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessRules":
        return cls(
            protected_prefixes=tuple(settings.protected_routes),
            auth_prefixes=tuple(settings.auth_routes),
            login_path=settings.login_path,
            landing_path=settings.landing_path,
        )


@dataclass(frozen=True)
class PassThrough:
    pass


@dataclass(frozen=True)
class Redirect:
    location: str


GuardDecision = PassThrough | Redirect


def evaluate_access(path: str, has_session_cookie: bool, rules: AccessRules) -> GuardDecision:
    if path.startswith("/static/") or path.lower().endswith(STATIC_ASSET_SUFFIXES):
        return PassThrough()

    is_protected = any(path.startswith(prefix) for prefix in rules.protected_prefixes)
    is_auth_route = any(path.startswith(prefix) for prefix in rules.auth_prefixes)

    if is_protected and not has_session_cookie:
        return Redirect(f"{rules.login_path}?{urlencode({'redirect': path})}")

    if is_auth_route and has_session_cookie:
        return Redirect(rules.landing_path)

    return PassThrough()


class AccessGuardMiddleware:
    def __init__(self, app: ASGIApp, rules: AccessRules) -> None:
        self.app = app
        self.rules = rules

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        path = request.url.path
        has_cookie = self.rules.cookie_name in request.cookies

        match evaluate_access(path, has_cookie, self.rules):
            case Redirect(location=location):
                logger.debug("Access guard redirecting %s to %s", path, location)
                response = RedirectResponse(url=location, status_code=307)
                await response(scope, receive, send)
            case PassThrough():
                await self.app(scope, receive, send)
