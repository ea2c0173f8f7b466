"""Google Sign-In verification and session tokens.

Google ID tokens are RS256 JWTs signed with the keys Google publishes at its
JWKS endpoint. Once a credential is verified the server issues its own
HS256 session token bound to the user's email; clients send it back as
``Authorization: Bearer <token>``.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError, PyJWKClient, PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.config import get_settings
from resumeforge.database import get_db
from resumeforge.exceptions import StorageError, TokenError, VerificationError
from resumeforge.models.user import User
from resumeforge.schemas.auth import IdentityAssertion, SessionClaims
from resumeforge.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

NOT_REGISTERED = "You are not registered. Please sign up"
BEARER_MISSING = "Authorization header missing. Use: Authorization: Bearer <token>"

_bearer_scheme = HTTPBearer(auto_error=False)
_jwks_client = None


def get_jwks_client() -> PyJWKClient:
    """Get or create a cached PyJWKClient for Google's signing keys."""
    global _jwks_client
    if _jwks_client is None:
        settings = get_settings()
        _jwks_client = PyJWKClient(
            settings.google_jwks_url,
            cache_keys=True,
            timeout=settings.verification_timeout_seconds,
        )
        logger.info("Initialized JWKS client for %s", settings.google_jwks_url)
    return _jwks_client


class CredentialVerifier:
    """Validates Google ID tokens and extracts the identity they assert.

    ``verify`` only ever raises :class:`VerificationError`; callers treat it
    as a recoverable, user-facing condition.
    """

    def __init__(self, client_id: str, jwks_client: PyJWKClient, timeout: float):
        self.client_id = client_id
        self.jwks_client = jwks_client
        self.timeout = timeout

    async def verify(self, credential: str | None) -> IdentityAssertion:
        if not credential:
            raise VerificationError()

        try:
            # Key lookup may hit the network, so it runs off the event loop
            payload = await asyncio.wait_for(
                asyncio.to_thread(self._decode, credential),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Google credential verification timed out after %ss", self.timeout
            )
            raise VerificationError()
        except PyJWTError as exc:
            logger.warning("Google credential rejected: %s", exc)
            raise VerificationError()

        expires_at = None
        if payload.get("exp") is not None:
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

        return IdentityAssertion(
            email=payload["email"],
            given_name=payload.get("given_name"),
            family_name=payload.get("family_name"),
            picture=payload.get("picture"),
            expires_at=expires_at,
        )

    def _decode(self, credential: str) -> dict:
        signing_key = self.jwks_client.get_signing_key_from_jwt(credential)
        payload = jwt.decode(
            credential,
            signing_key.key,
            algorithms=["RS256"],
            audience=self.client_id,
            options={"require": ["exp", "iat", "aud", "iss"]},
        )
        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise jwt.InvalidIssuerError("Invalid issuer")
        if not payload.get("email"):
            raise jwt.MissingRequiredClaimError("email")
        return payload


class SessionTokenService:
    """Issues and decodes the server's own session tokens.

    ``verify`` checks the signature only. Expiry comes back as data on
    :class:`SessionClaims` and is enforced by :func:`authorize_session`.
    """

    ALGORITHM = "HS256"

    def __init__(self, secret: str, lifetime: timedelta = timedelta(days=1)):
        self.secret = secret
        self.lifetime = lifetime

    def issue(self, email: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp"],
                },
            )
        except InvalidTokenError as exc:
            raise TokenError("invalid signature") from exc

        email = payload.get("email")
        if not email:
            raise TokenError("token does not carry an email")

        try:
            issued_at = None
            if payload.get("iat") is not None:
                issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise TokenError("malformed timestamps") from exc

        return SessionClaims(email=email, issued_at=issued_at, expires_at=expires_at)


@lru_cache
def get_credential_verifier() -> CredentialVerifier:
    settings = get_settings()
    return CredentialVerifier(
        client_id=settings.google_client_id,
        jwks_client=get_jwks_client(),
        timeout=settings.verification_timeout_seconds,
    )


@lru_cache
def get_session_tokens() -> SessionTokenService:
    settings = get_settings()
    return SessionTokenService(
        settings.session_secret,
        lifetime=timedelta(hours=settings.session_token_ttl_hours),
    )


def authorize_session(
    token: str | None,
    tokens: SessionTokenService,
    now: datetime | None = None,
    missing_detail: str = "Session token missing",
) -> SessionClaims:
    """Accept a session token only if its signature is valid and it has not expired.

    Raises:
        HTTPException 401: On a missing, forged, malformed or expired token.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=missing_detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = tokens.verify(token)
    except TokenError as exc:
        logger.info("Session token rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token verification failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if claims.is_expired(now):
        logger.info("Expired session token presented for %s", claims.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired. Please log in again",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return claims


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    tokens: SessionTokenService = Depends(get_session_tokens),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer session token to a registered user.

    Raises:
        HTTPException 401: If the token is missing, invalid, expired, or
            belongs to an email with no profile.
        HTTPException 500: If the user lookup fails.
    """
    token = credentials.credentials if credentials else None
    claims = authorize_session(token, tokens, missing_detail=BEARER_MISSING)

    try:
        user = await UserDirectory(db).find_by_email(claims.email)
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_REGISTERED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
