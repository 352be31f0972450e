"""Data models for the workflow engine."""

from .core import (
    START_NODE_ID,
    END_NODE_ID,
    NodeType,
    StepStatus,
    Position,
    EmailTemplate,
    CityCoordinates,
    NodeMetadata,
    NodeData,
    Node,
    Edge,
    WorkflowDefinition,
    FormData,
    Condition,
    ExecutePayload,
    StepResult,
    ExecutionError,
    ExecutionResult,
    ValidationResult,
    utc_timestamp,
)

__all__ = [
    "START_NODE_ID",
    "END_NODE_ID",
    "NodeType",
    "StepStatus",
    "Position",
    "EmailTemplate",
    "CityCoordinates",
    "NodeMetadata",
    "NodeData",
    "Node",
    "Edge",
    "WorkflowDefinition",
    "FormData",
    "Condition",
    "ExecutePayload",
    "StepResult",
    "ExecutionError",
    "ExecutionResult",
    "ValidationResult",
    "utc_timestamp",
]
