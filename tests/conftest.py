"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from weatherflow.core.context import ContextKey
from weatherflow.core.execution_engine import ExecutionEngine
from weatherflow.core.handler_registry import create_default_registry
from weatherflow.core.handlers import NodeOutcome
from weatherflow.models.core import ExecutePayload, WorkflowDefinition
from weatherflow.samples import weather_alert_workflow
from weatherflow.storage.database import create_tables
from weatherflow.storage.repository import WorkflowRepository


def make_definition(nodes, edges, workflow_id="wf-test"):
    """Build a definition from (id, type) pairs and edge dicts."""
    return WorkflowDefinition.model_validate({
        "id": workflow_id,
        "nodes": [
            {"id": node_id, "type": node_type, "data": {"label": node_id.title()}}
            for node_id, node_type in nodes
        ],
        "edges": [
            {"id": f"e{index}", **edge}
            for index, edge in enumerate(edges, start=1)
        ],
    })


def make_weather_stub(temperature):
    """Network-free weather handler recording a fixed temperature."""
    calls = []

    def stub(node, payload, context):
        calls.append(payload.form_data.city)
        context.set(ContextKey.WEATHER_TEMPERATURE, temperature)
        return NodeOutcome(output={"temperature": temperature, "location": payload.form_data.city})

    stub.calls = calls
    return stub


@pytest.fixture
def payload():
    """A complete execution payload asking for temperatures above 25."""
    return ExecutePayload.model_validate({
        "formData": {
            "name": "Alice",
            "email": "alice@example.com",
            "city": "Sydney",
            "operator": "greater_than",
            "threshold": 25,
        },
        "condition": {"operator": "greater_than", "threshold": 25},
    })


@pytest.fixture
def weather_workflow():
    """The six-node weather alert workflow."""
    return weather_alert_workflow()


@pytest.fixture
def registry():
    """Default registry whose weather lookup reports 30 degrees without network access."""
    handler_registry = create_default_registry()
    handler_registry.replace("weather-api", make_weather_stub(30.0))
    return handler_registry


@pytest.fixture
def execution_engine(registry):
    """Create an ExecutionEngine instance for testing."""
    return ExecutionEngine(registry)


@pytest.fixture
def session_factory():
    """In-memory database with the workflow table created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    create_tables(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    """Create a WorkflowRepository bound to the test database."""
    return WorkflowRepository(session_factory=session_factory)
