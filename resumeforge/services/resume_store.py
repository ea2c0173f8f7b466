import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.exceptions import StorageError
from resumeforge.models.resume import Resume

logger = logging.getLogger(__name__)

# Wizard progress marker sent by the editor; UI state, not resume content
UI_STATE_FIELDS = frozenset({"step"})

# Ownership metadata that must never be stored in or returned with content
OWNERSHIP_FIELDS = frozenset({"id", "_id", "owner_id", "userid"})

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def clean_content(document: dict[str, Any]) -> dict[str, Any]:
    """Drop UI state and ownership keys from a submitted resume."""
    return {
        key: value
        for key, value in document.items()
        if key not in UI_STATE_FIELDS and key not in OWNERSHIP_FIELDS
    }


class ResumeStore:
    """Exactly one resume per user.

    Saves are full replacements done as a single upsert on the unique
    ``owner_id`` column, so concurrent saves from the same user leave one row
    holding one of the submitted documents.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        try:
            result = await self.db.execute(
                select(Resume.content).where(Resume.owner_id == owner_id)
            )
        except SQLAlchemyError as exc:
            logger.error("Resume lookup failed for owner %s: %s", owner_id, exc, exc_info=True)
            raise StorageError("resume lookup failed") from exc

        content = result.scalar_one_or_none()
        if content is None:
            return None
        return clean_content(content)

    async def replace(self, owner_id: uuid.UUID, document: dict[str, Any]) -> None:
        content = clean_content(document)
        now = datetime.now(timezone.utc)

        dialect = self.db.bind.dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StorageError(f"atomic upsert is not supported on {dialect}")

        stmt = insert(Resume).values(
            owner_id=owner_id,
            content=content,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Resume.owner_id],
            set_={
                "content": stmt.excluded.content,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Resume save failed for owner %s: %s", owner_id, exc, exc_info=True)
            raise StorageError("resume save failed") from exc

        logger.info("Saved resume for owner %s (%d sections)", owner_id, len(content))
