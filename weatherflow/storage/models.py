"""SQLAlchemy database models for the workflow engine."""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON
from .database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class WorkflowModel(Base):
    """Database model for stored workflow definitions."""
    __tablename__ = "workflows"

    id = Column(String, primary_key=True)
    definition = Column(JSON, nullable=False)  # The complete workflow document as JSON
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
