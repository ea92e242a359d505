"""Shared test fixtures for async database, sessions, settings, and service tokens."""

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from catalog_api.core.config import Settings
from catalog_api.core.security import create_access_token
from catalog_api.models.base import Base

TEST_SECRET = "test-secret-key-not-for-production"
DATASET_API_URL = "http://localhost:22000"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        website_url="https://www.example.gov.uk",
        api_router_public_url="https://api.example.gov.uk/v1",
        download_service_url="https://download.example.gov.uk",
        code_list_api_url="https://api.example.gov.uk/v1",
        import_api_url="https://import.example.gov.uk",
        dataset_api_url=DATASET_API_URL,
    )


@pytest.fixture
def env_settings(monkeypatch: pytest.MonkeyPatch, settings: Settings) -> Settings:
    """Export the test settings to the environment for code calling get_settings()."""
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    monkeypatch.setenv("JWT_SECRET_KEY", settings.jwt_secret_key)
    monkeypatch.setenv("WEBSITE_URL", settings.website_url)
    monkeypatch.setenv("API_ROUTER_PUBLIC_URL", settings.api_router_public_url)
    monkeypatch.setenv("DOWNLOAD_SERVICE_URL", settings.download_service_url)
    monkeypatch.setenv("CODE_LIST_API_URL", settings.code_list_api_url)
    monkeypatch.setenv("IMPORT_API_URL", settings.import_api_url)
    monkeypatch.setenv("DATASET_API_URL", settings.dataset_api_url)
    return settings


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher_token(settings: Settings) -> str:
    """Generate a JWT for a publishing client."""
    return create_access_token(
        subject="test-publisher",
        role="publisher",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def viewer_token(settings: Settings) -> str:
    """Generate a JWT for a non-privileged client."""
    return create_access_token(
        subject="test-viewer",
        role="viewer",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
