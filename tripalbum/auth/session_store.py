import logging
import time
from collections.abc import Callable
from typing import Any

from fastapi import Request
from starlette.responses import Response

from tripalbum.auth.cookies import CookiePolicy
from tripalbum.auth.exceptions import SessionDecryptError
from tripalbum.auth.session_codec import SessionCodec
from tripalbum.config import Settings
from tripalbum.schemas.auth import PublicSession, SessionData

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days
# Sessions whose access token expires within this window are treated as absent
EXPIRY_BUFFER_MS = 60_000


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Reads and writes the encrypted ``session`` cookie for one request.

    Reads come from the incoming request's cookies; writes go to whichever
    response the handler returns. After a write, reads on the same store see
    the new value.
    """

    def __init__(
        self,
        cookie_value: str | None,
        codec: SessionCodec,
        policy: CookiePolicy,
        clock: Callable[[], int] = now_ms,
    ):
        self._cookie_value = cookie_value
        self.codec = codec
        self.policy = policy
        self.clock = clock

    @classmethod
    def from_request(cls, request: Request, settings: Settings) -> "SessionStore":
        return cls(
            request.cookies.get(SESSION_COOKIE_NAME),
            SessionCodec(settings.session_secret, settings.session_key_derivation),
            CookiePolicy.from_settings(settings),
        )

    def create(self, response: Response, session: SessionData) -> None:
        value = self.codec.encrypt(session)
        self.policy.set(response, SESSION_COOKIE_NAME, value, SESSION_MAX_AGE)
        self._cookie_value = value

    def read(self, include_expiring: bool = False) -> SessionData | None:
        """Return the current session, or None when there is no usable one.

        A missing, undecryptable or malformed cookie all read as "not logged
        in". Unless ``include_expiring`` is set, so does a session whose access
        token expires within the next 60 seconds.
        """
        if not self._cookie_value:
            return None

        try:
            session = self.codec.decrypt(self._cookie_value)
        except SessionDecryptError as e:
            logger.debug("Discarding session cookie: %s", e.message)
            return None

        if not include_expiring and session.expires_at <= self.clock() + EXPIRY_BUFFER_MS:
            return None

        return session

    def update(self, response: Response, **fields: Any) -> bool:
        session = self.read()
        if session is None:
            return False

        merged = SessionData.model_validate({**session.model_dump(), **fields})
        self.create(response, merged)
        return True

    def destroy(self, response: Response) -> None:
        self.policy.delete(response, SESSION_COOKIE_NAME)
        self._cookie_value = None

    def read_public_view(self) -> PublicSession | None:
        session = self.read()
        if session is None:
            return None
        return session.public_view()
