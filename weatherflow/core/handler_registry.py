"""Handler Registry mapping node types to the callables that execute them."""

from typing import Dict, Optional, Union

from ..models.core import NodeType
from ..services.open_meteo import GeocodingClient, WeatherClient
from .exceptions import HandlerRegistryError
from .handlers import (
    DEFAULT_EMAIL_SENDER,
    EmailHandler,
    NodeHandler,
    WeatherLookupHandler,
    process_condition_node,
    process_end_node,
    process_form_node,
    process_start_node,
)
from .logging import get_logger

logger = get_logger(__name__)


class HandlerRegistry:
    """Registry of node handlers injected into the execution engine.

    Substituting a handler (for example a network-free weather lookup in
    tests) is done on a registry instance, never on module globals.
    """

    def __init__(self):
        self._handlers: Dict[NodeType, NodeHandler] = {}
        self._descriptions: Dict[NodeType, str] = {}

    @staticmethod
    def _coerce_type(node_type: Union[NodeType, str]) -> NodeType:
        try:
            return NodeType(node_type)
        except ValueError:
            raise HandlerRegistryError(f"Unknown node type '{node_type}'", node_type=str(node_type))

    def register(self, node_type: Union[NodeType, str], handler: NodeHandler, description: str = "") -> None:
        """Register a handler for a node type.

        Args:
            node_type: Node type the handler executes
            handler: Callable taking (node, payload, context)
            description: Optional description of the handler's purpose

        Raises:
            HandlerRegistryError: If the type already has a handler or the handler is not callable
        """
        node_type = self._coerce_type(node_type)

        if not callable(handler):
            raise HandlerRegistryError(
                f"Handler for '{node_type.value}' must be callable",
                node_type=node_type.value,
                operation="register"
            )

        if node_type in self._handlers:
            raise HandlerRegistryError(
                f"Handler for '{node_type.value}' is already registered",
                node_type=node_type.value,
                operation="register"
            )

        self._handlers[node_type] = handler
        self._descriptions[node_type] = description.strip() if description else ""
        logger.debug(f"Registered handler for node type '{node_type.value}'")

    def replace(self, node_type: Union[NodeType, str], handler: NodeHandler, description: Optional[str] = None) -> None:
        """Register a handler, replacing any existing one for the same type."""
        node_type = self._coerce_type(node_type)
        previous_description = self._descriptions.get(node_type, "")
        self._handlers.pop(node_type, None)
        self.register(node_type, handler, previous_description if description is None else description)

    def get(self, node_type: Union[NodeType, str]) -> NodeHandler:
        """Retrieve the handler for a node type.

        Raises:
            HandlerRegistryError: If no handler is registered for the type
        """
        node_type = self._coerce_type(node_type)
        handler = self._handlers.get(node_type)
        if handler is None:
            raise HandlerRegistryError(
                f"No handler registered for node type '{node_type.value}'",
                node_type=node_type.value,
                operation="get"
            )
        return handler

    def unregister(self, node_type: Union[NodeType, str]) -> bool:
        """Remove a handler. Returns False if none was registered."""
        node_type = self._coerce_type(node_type)
        if node_type not in self._handlers:
            return False
        del self._handlers[node_type]
        self._descriptions.pop(node_type, None)
        logger.debug(f"Unregistered handler for node type '{node_type.value}'")
        return True

    def has(self, node_type: Union[NodeType, str]) -> bool:
        try:
            return self._coerce_type(node_type) in self._handlers
        except HandlerRegistryError:
            return False

    def list_handlers(self) -> Dict[str, str]:
        """List registered node types with their descriptions."""
        return {node_type.value: self._descriptions.get(node_type, "") for node_type in self._handlers}


def create_default_registry(
    geocoding_client: Optional[GeocodingClient] = None,
    weather_client: Optional[WeatherClient] = None,
    email_sender: str = DEFAULT_EMAIL_SENDER
) -> HandlerRegistry:
    """Build a registry holding the six built-in handlers."""
    registry = HandlerRegistry()

    handlers_to_register = [
        (NodeType.START, process_start_node, "Entry point; no-op"),
        (NodeType.END, process_end_node, "Exit point; no-op"),
        (NodeType.FORM, process_form_node, "Validates name, email and city"),
        (
            NodeType.WEATHER_API,
            WeatherLookupHandler(geocoding_client or GeocodingClient(), weather_client or WeatherClient()),
            "Looks up the current temperature for the form city"
        ),
        (NodeType.CONDITION, process_condition_node, "Compares the temperature against the payload threshold"),
        (NodeType.EMAIL, EmailHandler(email_sender), "Renders and simulates the alert email"),
    ]

    for node_type, handler, description in handlers_to_register:
        registry.register(node_type, handler, description)

    return registry
