"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    GraphValidationError,
    MissingStartNodeError,
    MissingEndNodeError,
    HandlerRegistryError,
    NoMatchingConditionalEdgeError,
    NodeExecutionError,
    StorageError,
    WorkflowNotFoundError,
)
from .logging import setup_logging, get_logger

__all__ = [
    "WorkflowEngineError",
    "GraphValidationError",
    "MissingStartNodeError",
    "MissingEndNodeError",
    "HandlerRegistryError",
    "NoMatchingConditionalEdgeError",
    "NodeExecutionError",
    "StorageError",
    "WorkflowNotFoundError",
    "setup_logging",
    "get_logger",
]
