from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.auth.oauth_state import OAUTH_STATE_COOKIE, OAUTH_VERIFIER_COOKIE
from tripalbum.auth.pkce import derive_challenge
from tripalbum.auth.session_codec import SessionCodec
from tripalbum.auth.session_store import SESSION_COOKIE_NAME, now_ms
from tripalbum.config import get_settings
from tripalbum.models import User

SAUTH = "https://auth.test"


def deleted_cookies(response: httpx.Response) -> set[str]:
    return {
        header.split("=", 1)[0]
        for header in response.headers.get_list("set-cookie")
        if "max-age=0" in header.lower()
    }


def decode_session_cookie(response: httpx.Response):
    settings = get_settings()
    codec = SessionCodec(settings.session_secret, settings.session_key_derivation)
    return codec.decrypt(response.cookies[SESSION_COOKIE_NAME])


def mock_provider(mock: respx.MockRouter, sub: str = "sauth-new-user") -> dict[str, respx.Route]:
    return {
        "token": mock.post(f"{SAUTH}/token").mock(
            return_value=httpx.Response(
                200,
                json={
                    "access_token": "provider-at",
                    "token_type": "Bearer",
                    "expires_in": 3600,
                    "refresh_token": "provider-rt",
                },
            )
        ),
        "userinfo": mock.get(f"{SAUTH}/userinfo").mock(
            return_value=httpx.Response(
                200,
                json={
                    "sub": sub,
                    "email": "ada@example.com",
                    "given_name": "Ada",
                    "family_name": "Lovelace",
                },
            )
        ),
    }


async def start_login(client: AsyncClient, path: str = "/login") -> dict[str, str]:
    response = await client.get(path)
    assert response.status_code == 302
    return {k: v[0] for k, v in parse_qs(urlparse(response.headers["location"]).query).items()}


class TestLogin:
    """Tests for starting a login."""

    @pytest.mark.asyncio
    async def test_login_redirects_to_provider(self, client: AsyncClient):
        response = await client.get("/login")

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == f"{SAUTH}/authorize"

        params = {k: v[0] for k, v in parse_qs(location.query).items()}
        assert params["state"] == response.cookies[OAUTH_STATE_COOKIE]
        verifier = response.cookies[OAUTH_VERIFIER_COOKIE]
        assert params["code_challenge"] == derive_challenge(verifier)
        assert params["code_challenge_method"] == "S256"

    @pytest.mark.asyncio
    async def test_login_with_session_cookie_goes_to_landing(self, auth_client: AsyncClient):
        response = await auth_client.get("/login")

        assert response.status_code == 307
        assert response.headers["location"] == "/trips"

    @pytest.mark.asyncio
    async def test_sso_ignores_existing_cookie(self, auth_client: AsyncClient):
        response = await auth_client.get("/sso")

        assert response.status_code == 302
        assert response.headers["location"].startswith(f"{SAUTH}/authorize?")


class TestCallback:
    """Tests for completing a login at /auth/callback."""

    @pytest.mark.asyncio
    async def test_full_login_flow(self, client: AsyncClient, db_session: AsyncSession):
        params = await start_login(client)

        with respx.mock(assert_all_called=True) as mock:
            routes = mock_provider(mock)
            response = await client.get(
                "/auth/callback", params={"code": "auth-code", "state": params["state"]}
            )

        assert response.status_code == 302
        assert response.headers["location"] == "/trips"

        token_form = parse_qs(routes["token"].calls.last.request.content.decode())
        assert token_form["code"] == ["auth-code"]
        assert derive_challenge(token_form["code_verifier"][0]) == params["code_challenge"]

        session = decode_session_cookie(response)
        assert session.user_id == "sauth-new-user"
        assert session.name == "Ada Lovelace"
        assert session.access_token == "provider-at"
        assert session.refresh_token == "provider-rt"
        assert session.expires_at > now_ms() + 3_500_000
        assert {OAUTH_STATE_COOKIE, OAUTH_VERIFIER_COOKIE} <= deleted_cookies(response)

        user = (
            await db_session.execute(select(User).where(User.id == "sauth-new-user"))
        ).scalar_one()
        assert user.email == "ada@example.com"

        me = await client.get("/api/v1/auth/session")
        assert me.json() == {
            "user": {"user_id": "sauth-new-user", "email": "ada@example.com", "name": "Ada Lovelace"}
        }

    @pytest.mark.asyncio
    async def test_login_updates_existing_user(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User
    ):
        params = await start_login(client)

        with respx.mock() as mock:
            mock_provider(mock, sub=test_user.id)
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert response.status_code == 302
        await db_session.refresh(test_user)
        assert test_user.email == "ada@example.com"
        assert test_user.name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_returns_to_requested_page(self, client: AsyncClient):
        params = await start_login(client, "/login?redirect=/trips/abc")

        with respx.mock() as mock:
            mock_provider(mock)
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert response.headers["location"] == "/trips/abc"

    @pytest.mark.asyncio
    async def test_external_return_path_is_ignored(self, client: AsyncClient):
        params = await start_login(client, "/login?redirect=https://evil.test/")

        with respx.mock() as mock:
            mock_provider(mock)
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert response.headers["location"] == "/trips"

    @pytest.mark.asyncio
    async def test_state_mismatch_rejected_before_token_call(self, client: AsyncClient):
        await start_login(client)

        with respx.mock(assert_all_called=False) as mock:
            routes = mock_provider(mock)
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": "forged-state"}
            )

        assert response.status_code == 302
        assert response.headers["location"] == "/?error=Invalid+state+parameter"
        assert not routes["token"].called
        assert SESSION_COOKIE_NAME not in response.cookies
        assert OAUTH_STATE_COOKIE in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_callback_without_pending_login(self, client: AsyncClient):
        response = await client.get("/auth/callback", params={"code": "c", "state": "s"})
        assert response.headers["location"] == "/?error=Invalid+state+parameter"

    @pytest.mark.asyncio
    async def test_missing_verifier(self, client: AsyncClient):
        client.cookies.set(OAUTH_STATE_COOKIE, "state-1")

        with respx.mock(assert_all_called=False) as mock:
            routes = mock_provider(mock)
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": "state-1"}
            )

        assert response.headers["location"] == "/?error=Missing+PKCE+verifier"
        assert not routes["token"].called

    @pytest.mark.asyncio
    async def test_state_is_single_use(self, client: AsyncClient):
        params = await start_login(client)

        with respx.mock() as mock:
            mock_provider(mock)
            first = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )
            client.cookies.delete(SESSION_COOKIE_NAME)
            replay = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert first.headers["location"] == "/trips"
        assert replay.headers["location"] == "/?error=Invalid+state+parameter"

    @pytest.mark.asyncio
    async def test_provider_error(self, client: AsyncClient):
        await start_login(client)

        response = await client.get(
            "/auth/callback",
            params={"error": "access_denied", "error_description": "User denied access"},
        )

        assert response.headers["location"] == "/?error=User+denied+access"
        assert OAUTH_STATE_COOKIE in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_missing_code(self, client: AsyncClient):
        await start_login(client)

        response = await client.get("/auth/callback")

        assert response.headers["location"] == "/?error=Missing+authorization+code+or+state"

    @pytest.mark.asyncio
    async def test_exchange_failure(self, client: AsyncClient, db_session: AsyncSession):
        params = await start_login(client)

        with respx.mock() as mock:
            mock.post(f"{SAUTH}/token").mock(
                return_value=httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Code expired"}
                )
            )
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert response.headers["location"] == "/?error=Code+expired"
        assert SESSION_COOKIE_NAME not in response.cookies
        users = (await db_session.execute(select(User))).scalars().all()
        assert users == []

    @pytest.mark.asyncio
    async def test_userinfo_failure(self, client: AsyncClient):
        params = await start_login(client)

        with respx.mock() as mock:
            mock_provider(mock)["userinfo"].mock(return_value=httpx.Response(500))
            response = await client.get(
                "/auth/callback", params={"code": "c", "state": params["state"]}
            )

        assert response.headers["location"] == "/?error=Failed+to+fetch+user+info"
        assert SESSION_COOKIE_NAME not in response.cookies


class TestLogout:
    """Tests for ending a session."""

    @pytest.mark.asyncio
    async def test_get_logout_redirects_to_login(self, auth_client: AsyncClient):
        response = await auth_client.get("/logout")

        assert response.status_code == 302
        assert response.headers["location"] == "/login"
        assert SESSION_COOKIE_NAME in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_post_logout(self, auth_client: AsyncClient):
        response = await auth_client.post("/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert SESSION_COOKIE_NAME in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_logout_without_session_is_idempotent(self, client: AsyncClient):
        first = await client.post("/logout")
        second = await client.post("/logout")

        assert first.status_code == 200
        assert second.status_code == 200
        assert SESSION_COOKIE_NAME not in client.cookies


class TestSessionEndpoint:
    """Tests for GET /api/v1/auth/session."""

    @pytest.mark.asyncio
    async def test_logged_in(self, auth_client: AsyncClient, test_user: User):
        response = await auth_client.get("/api/v1/auth/session")

        assert response.status_code == 200
        assert response.json()["user"] == {
            "user_id": test_user.id,
            "email": test_user.email,
            "name": "Test User",
        }
        assert "access_token" not in response.text

    @pytest.mark.asyncio
    async def test_anonymous(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session")
        assert response.json() == {"user": None}

    @pytest.mark.asyncio
    async def test_corrupt_cookie_reads_as_anonymous(self, client: AsyncClient):
        client.cookies.set(SESSION_COOKIE_NAME, "garbage")
        response = await client.get("/api/v1/auth/session")
        assert response.json() == {"user": None}

    @pytest.mark.asyncio
    async def test_near_expiry_reads_as_anonymous(self, client: AsyncClient, session_cookie_factory):
        client.cookies.set(SESSION_COOKIE_NAME, session_cookie_factory(expires_in_ms=30_000))
        response = await client.get("/api/v1/auth/session")
        assert response.json() == {"user": None}


class TestRefresh:
    """Tests for POST /auth/refresh."""

    @pytest.mark.asyncio
    async def test_refreshes_near_expiry_session(self, client: AsyncClient, session_cookie_factory):
        client.cookies.set(SESSION_COOKIE_NAME, session_cookie_factory(expires_in_ms=30_000))

        with respx.mock() as mock:
            route = mock.post(f"{SAUTH}/token").mock(
                return_value=httpx.Response(
                    200, json={"access_token": "fresh-at", "expires_in": 3600}
                )
            )
            response = await client.post("/auth/refresh")

        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Test User"
        assert parse_qs(route.calls.last.request.content.decode())["refresh_token"] == [
            "refresh-token"
        ]

        session = decode_session_cookie(response)
        assert session.access_token == "fresh-at"
        # Provider did not rotate the refresh token
        assert session.refresh_token == "refresh-token"
        assert session.expires_at > now_ms() + 3_500_000

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_stored(
        self, client: AsyncClient, session_cookie_factory
    ):
        client.cookies.set(SESSION_COOKIE_NAME, session_cookie_factory())

        with respx.mock() as mock:
            mock.post(f"{SAUTH}/token").mock(
                return_value=httpx.Response(
                    200,
                    json={"access_token": "at-2", "expires_in": 60, "refresh_token": "rt-2"},
                )
            )
            response = await client.post("/auth/refresh")

        assert decode_session_cookie(response).refresh_token == "rt-2"

    @pytest.mark.asyncio
    async def test_failed_refresh_ends_session(self, client: AsyncClient, session_cookie_factory):
        client.cookies.set(SESSION_COOKIE_NAME, session_cookie_factory(expires_in_ms=30_000))

        with respx.mock() as mock:
            route = mock.post(f"{SAUTH}/token").mock(
                return_value=httpx.Response(400, json={"error": "invalid_grant"})
            )
            response = await client.post("/auth/refresh")

        assert response.status_code == 401
        assert route.call_count == 1
        assert SESSION_COOKIE_NAME in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_session_without_refresh_token(
        self, client: AsyncClient, session_cookie_factory
    ):
        client.cookies.set(SESSION_COOKIE_NAME, session_cookie_factory(refresh_token=None))

        response = await client.post("/auth/refresh")

        assert response.status_code == 401
        assert SESSION_COOKIE_NAME in deleted_cookies(response)

    @pytest.mark.asyncio
    async def test_no_session(self, client: AsyncClient):
        response = await client.post("/auth/refresh")
        assert response.status_code == 401
