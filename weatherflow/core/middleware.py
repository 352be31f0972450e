"""Middleware for error handling and request logging."""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    GraphValidationError,
    HandlerRegistryError,
    WorkflowEngineError,
    WorkflowNotFoundError,
    create_error_response
)
from .logging import get_logger, logging_context


logger = get_logger(__name__)


def status_code_for_error(error: WorkflowEngineError) -> int:
    """Map a workflow engine error to its HTTP status code.

    Structural problems with a stored workflow (graph shape or a node type
    without a handler) are 422; unknown workflows are 404; anything else is 500.
    """
    if isinstance(error, WorkflowNotFoundError):
        return 404
    if isinstance(error, (GraphValidationError, HandlerRegistryError)):
        return 422
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID, logs it, and converts stray errors to JSON."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with error handling."""
        request_id = str(uuid.uuid4())
        start_time = time.time()

        with logging_context(request_id=request_id, method=request.method, path=request.url.path):
            try:
                logger.info(f"Request started: {request.method} {request.url.path}")

                response = await call_next(request)

                duration = time.time() - start_time
                logger.info(
                    f"Request completed: {request.method} {request.url.path} - "
                    f"Status: {response.status_code} - Duration: {duration:.3f}s"
                )

                response.headers["X-Request-ID"] = request_id
                return response

            except WorkflowEngineError as e:
                duration = time.time() - start_time
                logger.warning(
                    f"Workflow engine error: {request.method} {request.url.path} - "
                    f"Error: {e.error_code} - Duration: {duration:.3f}s"
                )

                return JSONResponse(
                    status_code=status_code_for_error(e),
                    content=create_error_response(e),
                    headers={"X-Request-ID": request_id}
                )

            except Exception as e:
                duration = time.time() - start_time
                logger.error(
                    f"Unexpected error: {request.method} {request.url.path} - "
                    f"Error: {str(e)} - Duration: {duration:.3f}s",
                    exc_info=True
                )

                return JSONResponse(
                    status_code=500,
                    content={
                        "error": "InternalServerError",
                        "message": "An unexpected error occurred",
                        "details": {
                            "error_type": type(e).__name__,
                            "timestamp": datetime.now(timezone.utc).isoformat()
                        },
                        "request_id": request_id
                    },
                    headers={"X-Request-ID": request_id}
                )
