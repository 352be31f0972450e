"""FastAPI REST endpoints for the workflow engine."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.responses import JSONResponse

from ..core.execution_engine import ExecutionEngine
from ..core.exceptions import WorkflowEngineError, WorkflowNotFoundError, create_error_response
from ..core.logging import get_logger
from ..core.middleware import status_code_for_error
from ..models.core import ExecutePayload, ExecutionResult
from ..storage.repository import WorkflowRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Global instances (initialized by the application lifespan)
_repository: Optional[WorkflowRepository] = None
_execution_engine: Optional[ExecutionEngine] = None


def init_dependencies(repository: WorkflowRepository, execution_engine: ExecutionEngine):
    """Initialize the global dependencies."""
    global _repository, _execution_engine
    _repository = repository
    _execution_engine = execution_engine


def get_repository() -> WorkflowRepository:
    """Dependency to get the workflow repository."""
    if _repository is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workflow repository not initialized"
        )
    return _repository


def get_execution_engine() -> ExecutionEngine:
    """Dependency to get execution engine."""
    if _execution_engine is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Execution engine not initialized"
        )
    return _execution_engine


def _load(load: Callable[[str], Any], workflow_id: str) -> Any:
    try:
        return load(workflow_id)
    except WorkflowNotFoundError as e:
        logger.warning(f"Workflow not found: {workflow_id}")
        raise HTTPException(status_code=status_code_for_error(e), detail=create_error_response(e))
    except WorkflowEngineError as e:
        logger.error(f"Failed to load workflow {workflow_id}: {e.message}")
        raise HTTPException(status_code=status_code_for_error(e), detail=create_error_response(e))


@router.get(
    "/workflows/{workflow_id}",
    summary="Get a workflow definition",
    description="Return the stored workflow definition for the given ID"
)
def get_workflow(
    workflow_id: str,
    repository: WorkflowRepository = Depends(get_repository)
) -> JSONResponse:
    """Return a stored workflow definition."""
    logger.debug(f"Returning workflow definition for id {workflow_id}")

    document = _load(repository.get_document, workflow_id)
    return JSONResponse(content=document)


@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecutionResult,
    summary="Execute a workflow",
    description="Run the stored workflow against the submitted form data and condition"
)
def execute_workflow(
    workflow_id: str,
    payload: ExecutePayload,
    repository: WorkflowRepository = Depends(get_repository),
    execution_engine: ExecutionEngine = Depends(get_execution_engine)
) -> JSONResponse:
    """
    Execute a stored workflow.

    Handler and routing failures are reported inside a ``failed`` execution
    result with status 200. Structural problems with the stored graph map to
    422; storage problems map to 404 or 500.
    """
    logger.debug(f"Handling workflow execution for id {workflow_id}")

    definition = _load(repository.get_definition, workflow_id)

    try:
        repository.touch(workflow_id)
        result = execution_engine.execute(definition, payload)
    except WorkflowEngineError as e:
        logger.error(f"Error executing workflow {workflow_id}: {e.message}")
        raise HTTPException(status_code=status_code_for_error(e), detail=create_error_response(e))
    except Exception as e:
        logger.error(f"Unexpected error executing workflow {workflow_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "InternalError",
                "message": "An unexpected error occurred while executing the workflow",
                "details": {"original_error": str(e)},
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    logger.info(f"Workflow {workflow_id} finished with status {result.status.value}")
    return JSONResponse(content=result.to_wire())


@router.get("/workflows", summary="List stored workflow IDs")
def list_workflows(repository: WorkflowRepository = Depends(get_repository)) -> Dict[str, Any]:
    """List stored workflow IDs."""
    try:
        return {"workflows": repository.list_ids()}
    except WorkflowEngineError as e:
        raise HTTPException(status_code=status_code_for_error(e), detail=create_error_response(e))
