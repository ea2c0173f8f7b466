"""
Tests for the user directory and the one-resume-per-user store
"""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import OperationalError

from resumeforge.exceptions import ConflictError, StorageError
from resumeforge.models.resume import Resume
from resumeforge.models.user import User
from resumeforge.schemas.auth import IdentityAssertion
from resumeforge.services.resume_store import ResumeStore, clean_content
from resumeforge.services.user_directory import UserDirectory


def _assertion(email="a@x.com"):
    return IdentityAssertion(
        email=email,
        given_name="Ann",
        family_name="Lee",
        picture="https://example.com/ann.png",
    )


async def _count(db, model, *criteria):
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_and_find_user(db):
    directory = UserDirectory(db)

    user = await directory.create(_assertion(), session_token="token-1")
    found = await directory.find_by_email("a@x.com")

    assert found is not None
    assert found.id == user.id
    assert found.first_name == "Ann"
    assert found.last_name == "Lee"
    assert found.picture_url == "https://example.com/ann.png"
    assert found.session_token == "token-1"


@pytest.mark.asyncio
async def test_find_unknown_email_returns_none(db):
    assert await UserDirectory(db).find_by_email("nobody@x.com") is None


@pytest.mark.asyncio
async def test_duplicate_signup_conflicts(db):
    directory = UserDirectory(db)
    await directory.create(_assertion(), session_token="token-1")

    with pytest.raises(ConflictError):
        await directory.create(_assertion(), session_token="token-2")

    assert await _count(db, User, User.email == "a@x.com") == 1


@pytest.mark.asyncio
async def test_concurrent_signups_create_one_user(session_factory):
    """Racing signups for the same email leave exactly one profile"""

    async def signup(token):
        async with session_factory() as session:
            try:
                await UserDirectory(session).create(_assertion(), session_token=token)
                return "created"
            except ConflictError:
                return "conflict"

    outcomes = await asyncio.gather(*(signup(f"token-{i}") for i in range(5)))

    assert outcomes.count("created") == 1
    assert outcomes.count("conflict") == 4
    async with session_factory() as session:
        assert await _count(session, User, User.email == "a@x.com") == 1


@pytest.mark.asyncio
async def test_replace_session_token(db):
    directory = UserDirectory(db)
    user = await directory.create(_assertion(), session_token="token-1")

    await directory.replace_session_token(user, "token-2")

    found = await directory.find_by_email("a@x.com")
    assert found.session_token == "token-2"


def test_clean_content_strips_step_and_ownership():
    cleaned = clean_content(
        {"name": "Ann", "step": 3, "_id": "x", "userid": "y", "owner_id": "z", "id": 1}
    )
    assert cleaned == {"name": "Ann"}


@pytest.mark.asyncio
async def test_get_without_resume_returns_none(db):
    user = await UserDirectory(db).create(_assertion(), session_token="t")
    assert await ResumeStore(db).get(user.id) is None


@pytest.mark.asyncio
async def test_save_strips_step(db):
    user = await UserDirectory(db).create(_assertion(), session_token="t")
    store = ResumeStore(db)

    await store.replace(user.id, {"name": "Ann", "step": 3})

    result = await db.execute(select(Resume.content).where(Resume.owner_id == user.id))
    assert result.scalar_one() == {"name": "Ann"}


@pytest.mark.asyncio
async def test_sequential_saves_keep_only_the_last(db):
    """Each save replaces the whole document; nothing is merged"""
    user = await UserDirectory(db).create(_assertion(), session_token="t")
    store = ResumeStore(db)

    documents = [
        {"name": "Ann", "skills": ["python"], "summary": "first"},
        {"name": "Ann Lee", "education": [{"institution": "MIT"}]},
        {"name": "A. Lee", "experience": [{"title": "Engineer"}]},
    ]
    for document in documents:
        await store.replace(user.id, document)

    assert await store.get(user.id) == documents[-1]
    assert await _count(db, Resume, Resume.owner_id == user.id) == 1


@pytest.mark.asyncio
async def test_get_never_returns_ownership_fields(db):
    user = await UserDirectory(db).create(_assertion(), session_token="t")
    store = ResumeStore(db)

    await store.replace(user.id, {"name": "Ann", "userid": "spoofed", "_id": "spoofed"})

    content = await store.get(user.id)
    assert content == {"name": "Ann"}


@pytest.mark.asyncio
async def test_resumes_are_isolated_per_user(db):
    directory = UserDirectory(db)
    ann = await directory.create(_assertion("a@x.com"), session_token="t1")
    bob = await directory.create(_assertion("b@x.com"), session_token="t2")
    store = ResumeStore(db)

    await store.replace(ann.id, {"name": "Ann"})
    await store.replace(bob.id, {"name": "Bob"})

    assert await store.get(ann.id) == {"name": "Ann"}
    assert await store.get(bob.id) == {"name": "Bob"}


@pytest.mark.asyncio
async def test_concurrent_saves_leave_exactly_one_document(session_factory):
    """Parallel saves from one user: one row, equal to one submitted document"""
    async with session_factory() as session:
        user = await UserDirectory(session).create(_assertion(), session_token="t")
        owner_id = user.id

    documents = [{"name": f"Ann v{i}", "summary": f"revision {i}"} for i in range(8)]

    async def save(document):
        async with session_factory() as session:
            await ResumeStore(session).replace(owner_id, document)

    await asyncio.gather(*(save(document) for document in documents))

    async with session_factory() as session:
        assert await _count(session, Resume, Resume.owner_id == owner_id) == 1
        assert await ResumeStore(session).get(owner_id) in documents


@pytest.mark.asyncio
async def test_failed_signup_insert_rolls_back(db, monkeypatch):
    """A database error on insert is a StorageError and leaves the session usable"""

    async def failing_commit():
        raise OperationalError("INSERT INTO users", {}, Exception("disk I/O error"))

    directory = UserDirectory(db)
    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(StorageError):
        await directory.create(_assertion(), session_token="t")

    monkeypatch.undo()
    assert await directory.find_by_email("a@x.com") is None
    user = await directory.create(_assertion(), session_token="t")
    assert user.email == "a@x.com"


@pytest.mark.asyncio
async def test_failed_resume_save_rolls_back(db, engine):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE resumes"))
    user = await UserDirectory(db).create(_assertion(), session_token="t")

    with pytest.raises(StorageError):
        await ResumeStore(db).replace(user.id, {"name": "Ann"})

    assert await _count(db, User) == 1


@pytest.mark.asyncio
async def test_failed_resume_lookup_is_storage_error(db, engine):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE resumes"))

    with pytest.raises(StorageError):
        await ResumeStore(db).get(uuid.uuid4())


@pytest.mark.asyncio
async def test_replace_refuses_dialect_without_upsert():
    session = SimpleNamespace(bind=SimpleNamespace(dialect=SimpleNamespace(name="mysql")))

    with pytest.raises(StorageError):
        await ResumeStore(session).replace(uuid.uuid4(), {"name": "Ann"})
