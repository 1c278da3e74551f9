from dataclasses import dataclass

from starlette.responses import Response

from tripalbum.config import Settings


@dataclass(frozen=True)
class CookiePolicy:
    """Attribute profile shared by the session and pending-login cookies."""

    secure: bool
    httponly: bool = True
    samesite: str = "lax"
    path: str = "/"

    @classmethod
    def from_settings(cls, settings: Settings) -> "CookiePolicy":
        return cls(secure=settings.cookies_secure)

    def set(self, response: Response, name: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path=self.path,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )

    def delete(self, response: Response, name: str) -> None:
        response.delete_cookie(
            key=name,
            path=self.path,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )
