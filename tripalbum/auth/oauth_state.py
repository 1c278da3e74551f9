"""Pending login state kept between the /authorize redirect and the callback.

The state, PKCE verifier and optional return path live in short-lived
httpOnly cookies. A browser holds at most one pending login: starting a new
one overwrites the previous cookies.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from fastapi import Request
from starlette.responses import Response

from tripalbum.auth.cookies import CookiePolicy
from tripalbum.config import Settings

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_VERIFIER_COOKIE = "oauth_verifier"
OAUTH_RETURN_TO_COOKIE = "oauth_return_to"
OAUTH_STATE_MAX_AGE = 60 * 10  # 10 minutes

_PENDING_COOKIES = (OAUTH_STATE_COOKIE, OAUTH_VERIFIER_COOKIE, OAUTH_RETURN_TO_COOKIE)


@dataclass(frozen=True)
class PendingAuthState:
    state: str | None = None
    verifier: str | None = None
    return_to: str | None = None


class OAuthStateStore:
    def __init__(self, cookies: Mapping[str, str], policy: CookiePolicy):
        self.policy = policy
        self._pending = PendingAuthState(
            state=cookies.get(OAUTH_STATE_COOKIE) or None,
            verifier=cookies.get(OAUTH_VERIFIER_COOKIE) or None,
            return_to=cookies.get(OAUTH_RETURN_TO_COOKIE) or None,
        )

    @classmethod
    def from_request(cls, request: Request, settings: Settings) -> "OAuthStateStore":
        return cls(request.cookies, CookiePolicy.from_settings(settings))

    def store(
        self,
        response: Response,
        state: str,
        verifier: str,
        return_to: str | None = None,
    ) -> None:
        self.policy.set(response, OAUTH_STATE_COOKIE, state, OAUTH_STATE_MAX_AGE)
        self.policy.set(response, OAUTH_VERIFIER_COOKIE, verifier, OAUTH_STATE_MAX_AGE)
        if return_to:
            self.policy.set(response, OAUTH_RETURN_TO_COOKIE, return_to, OAUTH_STATE_MAX_AGE)
        else:
            self.policy.delete(response, OAUTH_RETURN_TO_COOKIE)
        self._pending = PendingAuthState(state=state, verifier=verifier, return_to=return_to)

    def retrieve_and_clear(self) -> PendingAuthState:
        """Return the pending login once; every later call returns an empty state.

        The browser copy must also be dropped by calling :meth:`clear` on the
        response that answers this request.
        """
        pending = self._pending
        self._pending = PendingAuthState()
        return pending

    def clear(self, response: Response) -> None:
        for name in _PENDING_COOKIES:
            self.policy.delete(response, name)
