import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.exceptions import ConflictError, StorageError
from resumeforge.models.user import User
from resumeforge.schemas.auth import IdentityAssertion

logger = logging.getLogger(__name__)


class UserDirectory:
    """Email-keyed user profiles.

    Every other operation is gated on :meth:`find_by_email`: no profile means
    the caller is not registered.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        try:
            result = await self.db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as exc:
            logger.error("User lookup failed for %s: %s", email, exc, exc_info=True)
            raise StorageError("user lookup failed") from exc
        return result.scalar_one_or_none()

    async def create(self, assertion: IdentityAssertion, session_token: str) -> User:
        """Register a new profile for the asserted email.

        Raises:
            ConflictError: If the email already has a profile, including when
                a concurrent signup wins the race to the unique index.
            StorageError: On any other database failure.
        """
        existing = await self.find_by_email(assertion.email)
        if existing:
            raise ConflictError(f"{assertion.email} is already registered")

        user = User(
            email=assertion.email,
            first_name=assertion.given_name,
            last_name=assertion.family_name,
            picture_url=assertion.picture,
            session_token=session_token,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning("Concurrent signup rejected for %s", assertion.email)
            raise ConflictError(f"{assertion.email} is already registered") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("User insert failed for %s: %s", assertion.email, exc, exc_info=True)
            raise StorageError("user insert failed") from exc

        await self.db.refresh(user)
        logger.info("Registered user %s (%s)", user.id, user.email)
        return user

    async def replace_session_token(self, user: User, session_token: str) -> User:
        user.session_token = session_token
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Session token update failed for %s: %s", user.email, exc, exc_info=True)
            raise StorageError("session token update failed") from exc

        await self.db.refresh(user)
        return user
