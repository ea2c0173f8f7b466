from datetime import datetime, timezone

from pydantic import BaseModel, Field


class IdentityAssertion(BaseModel):
    """Identity claims extracted from a verified Google ID token."""

    email: str
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None
    expires_at: datetime | None = None


class SessionClaims(BaseModel):
    """Decoded session token. Expiry is data here, not a verification outcome."""

    email: str
    issued_at: datetime | None = None
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


class CredentialRequest(BaseModel):
    credential: str | None = Field(None, description="Google ID token from the Sign-In button")


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    status: str = "Success"


class UserPayload(BaseModel):
    """Profile returned to the client after signup/login, with its session token."""

    firstName: str | None = None
    lastName: str | None = None
    picture: str | None = None
    email: str
    token: str


class SignupResponse(BaseModel):
    message: str
    user: UserPayload


class LoginResponse(BaseModel):
    message: str
    user: UserPayload
    resume: dict | None = None
