"""
Shared fixtures: SQLite database per test, a Google-like RSA signing key,
and the FastAPI app wired to fakes for Google's JWKS and the PDF engine.
"""

import os
import time
from types import SimpleNamespace

os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from resumeforge.auth import (
    CredentialVerifier,
    SessionTokenService,
    get_credential_verifier,
    get_session_tokens,
)
from resumeforge.database import get_db
from resumeforge.main import app
from resumeforge.models.base import Base
from resumeforge.services.artifacts import ArtifactStore
from resumeforge.services.render_pipeline import RenderPipeline, get_render_pipeline

CLIENT_ID = "test-client-id.apps.googleusercontent.com"
SESSION_SECRET = "test-session-secret"


class FakeJWKClient:
    """Stands in for PyJWKClient: hands back the test public key, or fails like it."""

    def __init__(self, public_key, delay: float = 0.0, error: Exception | None = None):
        self.public_key = public_key
        self.delay = delay
        self.error = error

    def get_signing_key_from_jwt(self, token):
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(key=self.public_key)


async def echo_engine(html_content: str) -> bytes:
    """PDF engine stand-in: the 'PDF' is the HTML itself, so content is checkable."""
    return html_content.encode("utf-8")


@pytest.fixture(scope="session")
def google_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def mint_credential(google_key):
    def _mint(email="a@x.com", key=None, **overrides):
        now = int(time.time())
        claims = {
            "iss": "https://accounts.google.com",
            "aud": CLIENT_ID,
            "sub": "1234567890",
            "email": email,
            "given_name": "Ann",
            "family_name": "Lee",
            "picture": "https://example.com/ann.png",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        return jwt.encode(
            claims, key or google_key, algorithm="RS256", headers={"kid": "test-key"}
        )

    return _mint


@pytest.fixture
def make_verifier(google_key):
    def _make(delay=0.0, timeout=5, error=None):
        return CredentialVerifier(
            client_id=CLIENT_ID,
            jwks_client=FakeJWKClient(google_key.public_key(), delay=delay, error=error),
            timeout=timeout,
        )

    return _make


@pytest.fixture
def verifier(make_verifier):
    return make_verifier()


@pytest.fixture
def tokens():
    return SessionTokenService(SESSION_SECRET)


@pytest.fixture
def pipeline():
    return RenderPipeline(ArtifactStore(), engine=echo_engine, timeout=2)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, verifier, tokens, pipeline):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_credential_verifier] = lambda: verifier
    app.dependency_overrides[get_session_tokens] = lambda: tokens
    app.dependency_overrides[get_render_pipeline] = lambda: pipeline

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def signed_up(client, mint_credential):
    """Sign up an email and return (user payload, auth headers)."""

    async def _signup(email="a@x.com"):
        response = await client.post(
            "/api/v1/auth/signup", json={"credential": mint_credential(email=email)}
        )
        assert response.status_code == 201
        user = response.json()["user"]
        return user, {"Authorization": f"Bearer {user['token']}"}

    return _signup
