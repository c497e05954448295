"""
Engine construction shared by the repositories.

Both repositories must see the same database, so the engine is built
once and handed to each of them.
"""

from typing import Optional
from loguru import logger

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create an engine and make sure all tables exist.
    
    Args:
        database_url: SQLAlchemy database URL (defaults to in-memory SQLite)
        echo: Log emitted SQL
        
    Returns:
        Configured Engine
    """
    database_url = database_url or DEFAULT_DATABASE_URL
    
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    
    # Register every table on the shared metadata
    from . import book_repository, user_repository  # noqa: F401

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    
    logger.info(f"Database initialized: {database_url[:50]}")
    return engine
