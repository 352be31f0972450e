"""Database connection and session management."""

from typing import Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import AppConfig, get_config

# Global engine and session factory, created on first use
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None

# Base class for all database models
Base = declarative_base()


def get_database_engine(config: Optional[AppConfig] = None) -> Engine:
    """Get or create the database engine described by the configuration.

    SQLite engines share one connection through ``StaticPool`` so an
    in-memory database survives across sessions and threads.
    """
    global _engine

    if _engine is None:
        config = config or get_config()
        options = {}
        if config.is_sqlite:
            options["poolclass"] = StaticPool

        _engine = create_engine(
            config.database_url,
            echo=config.database_echo,
            connect_args=config.get_database_connect_args(),
            **options
        )

    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the global engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_database_engine())
    return _session_factory


def reset_database_engine():
    """Dispose of the global engine so the next call builds a fresh one."""
    global _engine, _session_factory
    if _engine:
        _engine.dispose()
    _engine = None
    _session_factory = None


def create_tables(engine: Optional[Engine] = None):
    """Create all database tables."""
    from . import models  # noqa: F401  registers the mapped classes

    Base.metadata.create_all(bind=engine or get_database_engine())
