"""Tests for the handler registry."""

import pytest

from weatherflow.core.exceptions import HandlerRegistryError
from weatherflow.core.handler_registry import HandlerRegistry, create_default_registry
from weatherflow.core.handlers import NodeOutcome, WeatherLookupHandler
from weatherflow.models.core import NodeType


def noop_handler(node, payload, context):
    return NodeOutcome()


def other_handler(node, payload, context):
    return NodeOutcome(output={"other": True})


class TestHandlerRegistry:
    """Test cases for HandlerRegistry."""

    def test_register_and_get(self):
        registry = HandlerRegistry()
        registry.register(NodeType.FORM, noop_handler, "Form handler")

        assert registry.get(NodeType.FORM) is noop_handler
        assert registry.get("form") is noop_handler
        assert registry.has("form")
        assert registry.list_handlers() == {"form": "Form handler"}

    def test_duplicate_registration_rejected(self):
        registry = HandlerRegistry()
        registry.register("form", noop_handler)

        with pytest.raises(HandlerRegistryError):
            registry.register("form", other_handler)

        assert registry.get("form") is noop_handler

    def test_replace_keeps_description(self):
        registry = HandlerRegistry()
        registry.register("email", noop_handler, "Sends mail")
        registry.replace("email", other_handler)

        assert registry.get("email") is other_handler
        assert registry.list_handlers()["email"] == "Sends mail"

    def test_non_callable_rejected(self):
        registry = HandlerRegistry()

        with pytest.raises(HandlerRegistryError):
            registry.register("form", "not a handler")

    def test_unknown_node_type(self):
        registry = HandlerRegistry()

        with pytest.raises(HandlerRegistryError):
            registry.register("teleport", noop_handler)
        assert not registry.has("teleport")

    def test_get_missing_handler(self):
        with pytest.raises(HandlerRegistryError):
            HandlerRegistry().get("end")

    def test_unregister(self):
        registry = HandlerRegistry()
        registry.register("end", noop_handler)

        assert registry.unregister("end") is True
        assert registry.unregister("end") is False
        assert not registry.has("end")

    def test_default_registry_covers_every_node_type(self):
        registry = create_default_registry()

        for node_type in NodeType:
            assert registry.has(node_type)
        assert isinstance(registry.get(NodeType.WEATHER_API), WeatherLookupHandler)
