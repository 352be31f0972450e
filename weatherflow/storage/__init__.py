"""Database models and storage layer."""

from .database import Base, create_tables, get_database_engine, get_session_factory, reset_database_engine
from .models import WorkflowModel
from .repository import WorkflowRepository

__all__ = [
    "Base",
    "create_tables",
    "get_database_engine",
    "get_session_factory",
    "reset_database_engine",
    "WorkflowModel",
    "WorkflowRepository",
]
