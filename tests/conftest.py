"""
Pytest configuration and fixtures for LendShelf tests.
"""

from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from lendshelf.api.main import create_app
from lendshelf.api.dependencies import Settings
from lendshelf.storage import create_database_engine, BookRepository, UserRepository
from lendshelf.lending.service import LendingService


FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0)


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite://",
        database_echo=False,
        max_attempts=3,
        environment="test",
        debug=True,
    )


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def engine():
    """In-memory database shared by both repositories."""
    engine = create_database_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def book_repo(engine) -> BookRepository:
    return BookRepository(engine=engine)


@pytest.fixture
def user_repo(engine) -> UserRepository:
    return UserRepository(engine=engine)


@pytest.fixture
def service(book_repo, user_repo) -> LendingService:
    """Lending service with a frozen clock."""
    return LendingService(book_repo, user_repo, clock=lambda: FIXED_NOW)


@pytest.fixture
def file_service(tmp_path) -> LendingService:
    """
    Lending service on a file-backed database.

    Each worker thread checks out its own connection, which the
    in-memory fixture cannot offer.
    """
    engine = create_database_engine(f"sqlite:///{tmp_path / 'lending.db'}")
    yield LendingService(
        BookRepository(engine=engine),
        UserRepository(engine=engine),
        clock=lambda: FIXED_NOW,
    )
    engine.dispose()


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_book_data() -> dict:
    """Sample upload payload."""
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "genre": "Science Fiction",
        "description": "First edition paperback.",
        "cover_ref": "/uploads/left-hand.jpg",
    }


@pytest.fixture
def accounts(service) -> dict:
    """Owner and two readers with empty ledgers."""
    return {
        "owner": service.create_account("Olu", user_id="owner").id,
        "r1": service.create_account("Rae", user_id="r1").id,
        "r2": service.create_account("Sam", user_id="r2").id,
    }


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def app():
    """Create FastAPI application for testing."""
    application = create_app(get_test_settings())
    yield application
    application.state.container.close()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
