import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from tripalbum.auth.exceptions import (
    AuthError,
    AuthExchangeError,
    AuthRefreshError,
    AuthUserInfoError,
)
from tripalbum.auth.pkce import generate_pkce, generate_state
from tripalbum.config import Settings
from tripalbum.schemas.auth import TokenResponse, UserInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    state: str
    verifier: str


def _error_description(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error_description") or body.get("error")
    return None


class OAuthClient:
    """Client for the S-Auth authorization server.

    Holds no per-user state; callers persist whatever it returns. Requests are
    not retried here.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = settings.sauth_base_url.rstrip("/")
        self.client_id = settings.sauth_client_id
        self.redirect_uri = settings.sauth_redirect_uri
        self.scopes = settings.oauth_scopes
        self.timeout = settings.oauth_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def build_authorization_url(self) -> AuthorizationRequest:
        verifier, challenge = generate_pkce()
        state = generate_state()
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scopes,
            "state": state,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
        }
        return AuthorizationRequest(
            url=f"{self.base_url}/authorize?{urlencode(params)}",
            state=state,
            verifier=verifier,
        )

    async def _post_token(
        self, data: dict[str, str | None], error_cls: type[AuthError]
    ) -> TokenResponse:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/token",
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("Token request to %s failed: %s", self.base_url, e)
            raise error_cls("Identity provider is unreachable") from None

        if not response.is_success:
            description = _error_description(response)
            logger.warning(
                "Token request (%s) rejected with %s: %s",
                data.get("grant_type"),
                response.status_code,
                description,
            )
            raise error_cls(description)

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            raise error_cls("Identity provider returned an invalid token response") from None

    async def exchange_code_for_tokens(self, code: str, verifier: str) -> TokenResponse:
        return await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
                "code_verifier": verifier,
            },
            AuthExchangeError,
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        return await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
            },
            AuthRefreshError,
        )

    async def get_user_info(self, access_token: str) -> UserInfo:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/userinfo",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error("Userinfo request to %s failed: %s", self.base_url, e)
            raise AuthUserInfoError("Identity provider is unreachable") from None

        if not response.is_success:
            logger.warning("Userinfo request rejected with %s", response.status_code)
            raise AuthUserInfoError()

        try:
            return UserInfo.model_validate(response.json())
        except (ValueError, ValidationError):
            raise AuthUserInfoError("Identity provider returned invalid user info") from None
