from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    refresh_token: str | None = None
    scope: str | None = None


class UserInfo(BaseModel):
    sub: str  # Subject identifier from S-Auth
    email: str
    given_name: str | None = None
    family_name: str | None = None
    access_level: str | None = None

    @property
    def display_name(self) -> str | None:
        parts = [part for part in (self.given_name, self.family_name) if part]
        return " ".join(parts) or None


class PublicSession(BaseModel):
    user_id: str
    email: str
    name: str | None = None


class SessionData(BaseModel):
    """Session record stored encrypted in the ``session`` cookie."""

    user_id: str
    email: str
    name: str | None = None
    access_token: str
    refresh_token: str | None = None
    expires_at: int  # Access token expiry, epoch milliseconds

    def public_view(self) -> PublicSession:
        return PublicSession(user_id=self.user_id, email=self.email, name=self.name)


class SessionResponse(BaseModel):
    user: PublicSession | None = None


class LogoutResponse(BaseModel):
    success: bool = True
