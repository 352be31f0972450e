"""Core Pydantic models for the workflow engine."""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


START_NODE_ID = "start"
END_NODE_ID = "end"


class NodeType(str, Enum):
    """Enumeration of the fixed node vocabulary."""
    START = "start"
    END = "end"
    FORM = "form"
    WEATHER_API = "weather-api"
    CONDITION = "condition"
    EMAIL = "email"


class StepStatus(str, Enum):
    """Enumeration of step and workflow execution statuses."""
    COMPLETED = "completed"
    FAILED = "failed"


class WireModel(BaseModel):
    """Base model for documents exchanged in camelCase JSON."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump the model using its JSON field names."""
        return self.model_dump(by_alias=True, mode="json")


class Position(WireModel):
    """Editor layout position; irrelevant to execution."""
    x: float = 0.0
    y: float = 0.0


class EmailTemplate(WireModel):
    """Subject/body template rendered by the email node."""
    subject: str = Field(default="", description="Subject template")
    body: str = Field(default="", description="Body template")


class CityCoordinates(WireModel):
    """Preset city option offered by a weather node."""
    city: str
    lat: float
    lon: float


class NodeMetadata(WireModel):
    """Type-specific node configuration."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    has_handles: Optional[Dict[str, Any]] = Field(default=None, alias="hasHandles")
    input_fields: Optional[List[str]] = Field(default=None, alias="inputFields")
    output_variables: Optional[List[str]] = Field(default=None, alias="outputVariables")
    input_variables: Optional[List[str]] = Field(default=None, alias="inputVariables")
    email_template: Optional[EmailTemplate] = Field(default=None, alias="emailTemplate")
    api_endpoint: Optional[str] = Field(default=None, alias="apiEndpoint")
    options: Optional[List[CityCoordinates]] = None
    condition_expression: Optional[str] = Field(default=None, alias="conditionExpression")


class NodeData(WireModel):
    """Display data and metadata attached to a node."""
    label: str = ""
    description: str = ""
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)


class Node(WireModel):
    """A typed step in a workflow graph."""
    id: str = Field(..., description="Unique identifier for the node")
    type: NodeType = Field(..., description="Node type used for handler dispatch")
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @field_validator('id')
    @classmethod
    def validate_id(cls, node_id):
        """Ensure node ID is not empty."""
        if not node_id or not node_id.strip():
            raise ValueError("Node ID cannot be empty")
        return node_id.strip()

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, node_type):
        """Accept the descriptive alias for the weather lookup kind."""
        if node_type == "weather-lookup":
            return NodeType.WEATHER_API
        return node_type


class Edge(WireModel):
    """A directed connection between two nodes."""
    id: str = ""
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    type: Optional[str] = None
    animated: bool = False
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    style: Optional[Dict[str, Any]] = None
    label: Optional[str] = Field(default=None, description="Routing label for condition edges")
    label_style: Optional[Dict[str, Any]] = Field(default=None, alias="labelStyle")


class WorkflowDefinition(WireModel):
    """Complete definition of a workflow graph."""
    id: str = ""
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @field_validator('nodes')
    @classmethod
    def validate_unique_node_ids(cls, nodes):
        """Ensure all node IDs are unique."""
        node_ids = [node.id for node in nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("All node IDs must be unique")
        return nodes


class FormData(WireModel):
    """User-supplied form fields."""
    name: str = ""
    email: str = ""
    city: str = ""
    operator: str = ""
    threshold: float = 0.0


class Condition(WireModel):
    """Comparison applied by the condition node."""
    operator: str = ""
    threshold: float = 0.0


class ExecutePayload(WireModel):
    """Caller-supplied input for one execution."""
    form_data: FormData = Field(default_factory=FormData, alias="formData")
    condition: Condition = Field(default_factory=Condition)


class StepResult(WireModel):
    """Recorded outcome of one node handler invocation."""
    node_id: str = Field(..., alias="nodeId")
    type: str
    label: str = ""
    description: str = ""
    status: StepStatus
    output: Dict[str, Any] = Field(default_factory=dict)


class ExecutionError(WireModel):
    """Terminating cause of a failed traversal."""
    code: str
    message: str
    node_id: Optional[str] = Field(default=None, alias="nodeId")


class ExecutionResult(WireModel):
    """Outcome of one traversal: status plus the ordered step trace."""
    executed_at: str = Field(..., alias="executedAt")
    status: StepStatus
    steps: List[StepResult] = Field(default_factory=list)
    error: Optional[ExecutionError] = None

    @model_validator(mode='after')
    def validate_error_matches_status(self):
        """A failed result must carry its cause, a completed one must not."""
        if self.status == StepStatus.COMPLETED and self.error is not None:
            raise ValueError("Completed execution cannot carry an error")
        if self.status == StepStatus.FAILED and self.error is None:
            raise ValueError("Failed execution must carry an error")
        return self

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED


class ValidationResult(BaseModel):
    """Result of graph validation."""
    is_valid: bool = Field(..., description="Whether the graph is valid")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")


def utc_timestamp() -> str:
    """Return the current UTC time as an RFC3339 string with nanoseconds."""
    now_ns = time.time_ns()
    seconds, nanos = divmod(now_ns, 1_000_000_000)
    base = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{base}.{nanos:09d}Z"
