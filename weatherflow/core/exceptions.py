"""Custom exceptions for the workflow engine with detailed error information."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""
    VALIDATION = "validation"
    ROUTING = "routing"
    EXECUTION = "execution"
    STORAGE = "storage"
    NETWORK = "network"
    CONFIGURATION = "configuration"


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.EXECUTION,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.category = category
        self.details = details or {}
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }

    def add_context(self, **kwargs):
        """Add additional context to the exception."""
        self.context.update(kwargs)
        return self

    def add_details(self, **kwargs):
        """Add additional details to the exception."""
        self.details.update(kwargs)
        return self


# Structural errors: raised before traversal starts.

class GraphValidationError(WorkflowEngineError):
    """Raised when graph validation fails."""

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[str]] = None,
        workflow_id: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors or []
        if workflow_id:
            self.add_context(workflow_id=workflow_id)
        if validation_errors:
            self.add_details(validation_errors=validation_errors)


class MissingStartNodeError(GraphValidationError):
    """Raised when the workflow has no node with the canonical start id."""

    def __init__(self, message: str = "missing 'start' node", **kwargs):
        super().__init__(message, **kwargs)


class MissingEndNodeError(GraphValidationError):
    """Raised when the workflow has no node with the canonical end id."""

    def __init__(self, message: str = "missing 'end' node", **kwargs):
        super().__init__(message, **kwargs)


class HandlerRegistryError(WorkflowEngineError):
    """Raised when handler registry operations fail."""

    def __init__(
        self,
        message: str,
        node_type: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )
        if node_type:
            self.add_context(node_type=node_type)
        if operation:
            self.add_context(operation=operation)


# Routing errors: raised mid-traversal, never recorded as a step.

class NoMatchingConditionalEdgeError(WorkflowEngineError):
    """Raised when no outgoing edge of a condition node carries the selected label."""

    def __init__(self, node_id: str, expected_label: str, **kwargs):
        super().__init__(
            f"no matching conditional edge for node {node_id}",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.ROUTING,
            **kwargs
        )
        self.node_id = node_id
        self.expected_label = expected_label
        self.add_context(node_id=node_id)
        self.add_details(expected_label=expected_label)


# Handler errors: recorded as a failed step, then halt the traversal.

class NodeExecutionError(WorkflowEngineError):
    """Raised when a node handler fails."""

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("category", ErrorCategory.EXECUTION)
        super().__init__(message, **kwargs)
        if node_id:
            self.add_context(node_id=node_id)


class MissingFormFieldError(NodeExecutionError):
    """Raised when a required form field is empty."""

    field_name = ""

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message or f"{self.field_name} is required", **kwargs)
        self.add_details(field=self.field_name)


class MissingNameError(MissingFormFieldError):
    """Raised when the form name is empty."""
    field_name = "name"


class MissingEmailError(MissingFormFieldError):
    """Raised when the form email is empty."""
    field_name = "email"


class MissingCityError(MissingFormFieldError):
    """Raised when the form city is empty."""
    field_name = "city"


class ContextValueError(NodeExecutionError):
    """Base class for execution context access failures."""

    def __init__(self, message: str, key: str, **kwargs):
        super().__init__(message, **kwargs)
        self.key = key
        self.add_details(key=key)


class MissingContextValueError(ContextValueError):
    """Raised when a required context slot was never written."""

    def __init__(self, key: str, **kwargs):
        super().__init__(f"context value '{key}' has not been set", key, **kwargs)


class ContextValueTypeError(ContextValueError):
    """Raised when a context slot is written with a value of the wrong type."""

    def __init__(self, key: str, expected: str, actual: str, **kwargs):
        super().__init__(
            f"context value '{key}' must be {expected}, got {actual}", key, **kwargs
        )
        self.add_details(expected_type=expected, actual_type=actual)


class UnsupportedOperatorError(NodeExecutionError):
    """Raised when the condition operator is not recognized."""

    def __init__(self, operator: str, **kwargs):
        super().__init__(f"unsupported operator: {operator}", **kwargs)
        self.operator = operator
        self.add_details(operator=operator)


class MissingEmailTemplateError(NodeExecutionError):
    """Raised when an email node carries no template."""

    def __init__(self, message: str = "email template is missing", **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        super().__init__(message, **kwargs)


class MissingApiEndpointError(NodeExecutionError):
    """Raised when a weather node carries no endpoint template."""

    def __init__(self, message: str = "weather API endpoint is missing", **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        super().__init__(message, **kwargs)


class ExternalServiceError(NodeExecutionError):
    """Raised when a call to an external service fails."""

    def __init__(self, message: str, service: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.NETWORK)
        super().__init__(message, **kwargs)
        if service:
            self.add_context(service=service)


class GeocodingRequestError(ExternalServiceError):
    """Raised when the geocoding request cannot be completed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(f"geocoding API request failed: {message}", service="geocoding", **kwargs)


class CityNotFoundError(ExternalServiceError):
    """Raised when geocoding returns no results."""

    def __init__(self, city: str, **kwargs):
        super().__init__(f"no results found for city: {city}", service="geocoding", **kwargs)
        self.add_details(city=city)


class ResponseDecodeError(ExternalServiceError):
    """Raised when an external response body cannot be decoded."""

    def __init__(self, message: str = "failed to decode response", **kwargs):
        super().__init__(message, **kwargs)


class WeatherRequestError(ExternalServiceError):
    """Raised when the weather request cannot be completed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(f"failed to fetch weather data: {message}", service="weather", **kwargs)


class WeatherStatusError(ExternalServiceError):
    """Raised when the weather service answers with a non-success status."""

    def __init__(self, status_code: int, **kwargs):
        super().__init__(f"weather API returned status: {status_code}", service="weather", **kwargs)
        self.status_code = status_code
        self.add_details(status_code=status_code)


# Storage errors.

class StorageError(WorkflowEngineError):
    """Raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("category", ErrorCategory.STORAGE)
        super().__init__(message, **kwargs)
        if operation:
            self.add_context(operation=operation)
        if table:
            self.add_context(table=table)


class WorkflowNotFoundError(StorageError):
    """Raised when no workflow exists for the requested id."""

    def __init__(self, workflow_id: str, **kwargs):
        super().__init__("workflow not found", severity=ErrorSeverity.LOW, **kwargs)
        self.workflow_id = workflow_id
        self.add_context(workflow_id=workflow_id)


class InvalidWorkflowFormatError(StorageError):
    """Raised when a stored workflow document cannot be decoded."""

    def __init__(self, workflow_id: str, reason: str = "", **kwargs):
        super().__init__("invalid workflow format", **kwargs)
        self.add_context(workflow_id=workflow_id)
        if reason:
            self.add_details(reason=reason)


class ConfigurationError(WorkflowEngineError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )
        if config_key:
            self.add_context(config_key=config_key)


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Create a standardized error response from a WorkflowEngineError."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
