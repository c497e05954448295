"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Storage and the lending service
- The acting user supplied by the identity layer
"""

import os
from typing import Optional
from functools import lru_cache
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Header, Request
from sqlalchemy import text


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(ValueError):
    """An environment variable holds a value the application cannot use."""


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}")
    return value


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./lendshelf.db"
    database_echo: bool = False

    # Compare-and-swap attempts per lending operation
    max_attempts: int = 3

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            max_attempts=_positive_int_env("LENDING_MAX_ATTEMPTS", cls.max_attempts),
            environment=os.getenv("LENDSHELF_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    One container per application; the database engine is created on
    first access so building an app never touches the database.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine = None
        self._book_repository = None
        self._user_repository = None
        self._lending_service = None

    @property
    def engine(self):
        """Get shared database engine."""
        if self._engine is None:
            from ..storage.database import create_database_engine
            self._engine = create_database_engine(
                self.settings.database_url,
                echo=self.settings.database_echo,
            )
        return self._engine

    @property
    def book_repository(self):
        """Get book repository instance."""
        if self._book_repository is None:
            from ..storage.book_repository import BookRepository
            self._book_repository = BookRepository(engine=self.engine)
        return self._book_repository

    @property
    def user_repository(self):
        """Get user ledger repository instance."""
        if self._user_repository is None:
            from ..storage.user_repository import UserRepository
            self._user_repository = UserRepository(engine=self.engine)
        return self._user_repository

    @property
    def lending_service(self):
        """Get lending service instance."""
        if self._lending_service is None:
            from ..lending.service import LendingService
            self._lending_service = LendingService(
                book_repository=self.book_repository,
                user_repository=self.user_repository,
                max_attempts=self.settings.max_attempts,
            )
        return self._lending_service

    def check_database(self) -> bool:
        """Run a trivial query against the database."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        """Release pooled connections."""
        if self._engine is not None:
            self._engine.dispose()


def get_service_container(request: Request) -> ServiceContainer:
    """Get the container of the application handling this request."""
    return request.app.state.container


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_lending_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for lending service."""
    return container.lending_service


# =============================================================================
# Identity Dependencies
# =============================================================================

async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Acting user as supplied by the identity layer.

    The value is trusted as-is; format checks happen in the service.

    Raises:
        HTTPException: If the header is missing.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=401,
            detail="X-User-Id header required",
        )
    return x_user_id
