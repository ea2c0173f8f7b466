from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Google Sign-In
    google_client_id: str
    google_jwks_url: str = "https://www.googleapis.com/oauth2/v3/certs"
    verification_timeout_seconds: float = 10.0

    # Session tokens
    session_secret: str
    session_token_ttl_hours: int = 24

    # Database
    database_url: str = "sqlite+aiosqlite:///./resumeforge.db"

    # Rendering
    render_timeout_seconds: float = 6.0
    artifact_ttl_seconds: int = 600
    artifact_max_per_owner: int = 8

    # CORS
    allowed_domains: list[str] = ["*"]
    app_name: str = "Resume Builder"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @model_validator(mode="after")
    def normalize_database_url(self) -> "Settings":
        """Ensure DATABASE_URL uses an async driver.

        Hosted PostgreSQL providers usually hand out a plain 'postgresql://'
        URL and a bare 'sqlite://' URL is common for local runs. SQLAlchemy
        needs 'postgresql+asyncpg://' or 'sqlite+aiosqlite://' for async support.
        """
        url = self.database_url
        if url.startswith("postgresql://"):
            self.database_url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.database_url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            self.database_url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
