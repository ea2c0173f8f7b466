import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.auth import (
    NOT_REGISTERED,
    CredentialVerifier,
    SessionTokenService,
    authorize_session,
    get_credential_verifier,
    get_session_tokens,
)
from resumeforge.database import get_db
from resumeforge.exceptions import ConflictError, StorageError, VerificationError
from resumeforge.models.user import User
from resumeforge.schemas.auth import (
    CredentialRequest,
    LoginResponse,
    SignupResponse,
    UserPayload,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from resumeforge.services.resume_store import ResumeStore
from resumeforge.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _user_payload(user: User, token: str) -> UserPayload:
    return UserPayload(
        firstName=user.first_name,
        lastName=user.last_name,
        picture=user.picture_url,
        email=user.email,
        token=token,
    )


@router.post("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(
    request: VerifyTokenRequest,
    tokens: SessionTokenService = Depends(get_session_tokens),
    db: AsyncSession = Depends(get_db),
):
    """Check that a session token is authentic, unexpired and belongs to a user."""
    claims = authorize_session(request.token, tokens)

    try:
        user = await UserDirectory(db).find_by_email(claims.email)
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    if not user:
        raise HTTPException(status_code=400, detail=NOT_REGISTERED)

    return VerifyTokenResponse()


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(
    request: CredentialRequest,
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    tokens: SessionTokenService = Depends(get_session_tokens),
    db: AsyncSession = Depends(get_db),
):
    """Register a new user from a Google Sign-In credential.

    Returns the profile together with a fresh session token.
    """
    try:
        assertion = await verifier.verify(request.credential)
    except VerificationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    token = tokens.issue(assertion.email)
    try:
        user = await UserDirectory(db).create(assertion, token)
    except ConflictError:
        logger.info("[Signup] %s is already registered", assertion.email)
        raise HTTPException(
            status_code=409, detail="You are already registered. Please log in"
        )
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    return SignupResponse(message="Signup was successful", user=_user_payload(user, token))


@router.post("/login", response_model=LoginResponse)
async def login(
    request: CredentialRequest,
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    tokens: SessionTokenService = Depends(get_session_tokens),
    db: AsyncSession = Depends(get_db),
):
    """Log a registered user in and return their profile, token and saved resume."""
    try:
        assertion = await verifier.verify(request.credential)
    except VerificationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    directory = UserDirectory(db)
    try:
        user = await directory.find_by_email(assertion.email)
        if not user:
            raise HTTPException(status_code=400, detail=NOT_REGISTERED)

        token = tokens.issue(user.email)
        user = await directory.replace_session_token(user, token)
        resume = await ResumeStore(db).get(user.id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info("[Login] %s logged in (resume saved: %s)", user.email, resume is not None)
    return LoginResponse(
        message="Login was successful",
        user=_user_payload(user, token),
        resume=resume,
    )
