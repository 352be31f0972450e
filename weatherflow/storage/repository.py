"""Workflow definition persistence."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from pydantic import ValidationError
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import WorkflowDefinition
from ..core.exceptions import InvalidWorkflowFormatError, StorageError, WorkflowNotFoundError
from ..core.logging import get_logger
from .database import get_session_factory
from .models import WorkflowModel

logger = get_logger(__name__)


class WorkflowRepository:
    """Fetches and updates workflow definitions stored as JSON documents."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        """Initialize with an optional session factory; defaults to the global one."""
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        factory = self._session_factory or get_session_factory()
        return factory()

    def get_document(self, workflow_id: str) -> Dict[str, Any]:
        """
        Retrieve the stored workflow document exactly as it was saved.

        Raises:
            WorkflowNotFoundError: If no workflow has the ID
            StorageError: If the database operation fails
        """
        logger.debug(f"Retrieving workflow document for id: {workflow_id}")

        session = self._get_session()
        try:
            model = session.get(WorkflowModel, workflow_id)
            if model is None:
                raise WorkflowNotFoundError(workflow_id)
            document = model.definition
        except SQLAlchemyError as e:
            logger.error(f"Database error while retrieving workflow: {str(e)}")
            raise StorageError(f"Failed to retrieve workflow: {str(e)}", operation="get", table="workflows")
        finally:
            session.close()

        return document

    def get_definition(self, workflow_id: str) -> WorkflowDefinition:
        """
        Retrieve and decode a workflow definition by its ID.

        Raises:
            WorkflowNotFoundError: If no workflow has the ID
            InvalidWorkflowFormatError: If the stored document does not decode
            StorageError: If the database operation fails
        """
        document = self.get_document(workflow_id)
        try:
            return WorkflowDefinition.model_validate(document)
        except ValidationError as e:
            logger.error(f"Invalid workflow format for id {workflow_id}: {e}")
            raise InvalidWorkflowFormatError(workflow_id, reason=str(e))

    def update_definition(self, workflow_id: str, definition: WorkflowDefinition) -> None:
        """
        Replace the stored definition of an existing workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has the ID
            StorageError: If the database operation fails
        """
        session = self._get_session()
        try:
            model = session.get(WorkflowModel, workflow_id)
            if model is None:
                raise WorkflowNotFoundError(workflow_id)

            model.definition = definition.to_wire()
            model.updated_at = datetime.now(timezone.utc)
            session.commit()

            logger.debug(f"Updated workflow definition for id: {workflow_id}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error while updating workflow: {str(e)}")
            raise StorageError(f"Failed to update workflow: {str(e)}", operation="update", table="workflows")
        finally:
            session.close()

    def touch(self, workflow_id: str) -> None:
        """
        Mark a workflow as used by bumping its ``updated_at``.

        The stored document itself is left byte-for-byte as it was saved.

        Raises:
            WorkflowNotFoundError: If no workflow has the ID
            StorageError: If the database operation fails
        """
        session = self._get_session()
        try:
            model = session.get(WorkflowModel, workflow_id)
            if model is None:
                raise WorkflowNotFoundError(workflow_id)

            model.updated_at = datetime.now(timezone.utc)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error while touching workflow: {str(e)}")
            raise StorageError(f"Failed to touch workflow: {str(e)}", operation="touch", table="workflows")
        finally:
            session.close()

    def save_definition(self, definition: WorkflowDefinition) -> str:
        """Insert or replace a workflow definition keyed by its own ID."""
        if not definition.id:
            raise StorageError("Workflow definition must have an id to be stored", operation="save")

        session = self._get_session()
        try:
            model = session.get(WorkflowModel, definition.id)
            if model is None:
                session.add(WorkflowModel(id=definition.id, definition=definition.to_wire()))
            else:
                model.definition = definition.to_wire()
                model.updated_at = datetime.now(timezone.utc)
            session.commit()

            logger.info(f"Stored workflow definition: {definition.id}")
            return definition.id
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error while storing workflow: {str(e)}")
            raise StorageError(f"Failed to store workflow: {str(e)}", operation="save", table="workflows")
        finally:
            session.close()

    def list_ids(self) -> List[str]:
        """List stored workflow IDs."""
        session = self._get_session()
        try:
            return [row.id for row in session.query(WorkflowModel.id).order_by(WorkflowModel.id).all()]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list workflows: {str(e)}", operation="list", table="workflows")
        finally:
            session.close()
