"""Tests for the indexed workflow graph."""

import pytest

from weatherflow.core.exceptions import GraphValidationError, MissingEndNodeError, MissingStartNodeError
from weatherflow.core.graph import WorkflowGraph

from conftest import make_definition


class TestWorkflowGraph:
    """Test cases for WorkflowGraph indexes and validation."""

    def test_adjacency_keeps_edge_order(self):
        definition = make_definition(
            [("start", "start"), ("a", "form"), ("b", "form"), ("end", "end")],
            [
                {"source": "start", "target": "b"},
                {"source": "start", "target": "a"},
                {"source": "a", "target": "end"},
            ]
        )
        graph = WorkflowGraph(definition)

        assert graph.targets("start") == ["b", "a"]
        assert graph.adjacency == {"start": ["b", "a"], "a": ["end"]}
        assert graph.targets("end") == []
        assert graph.get_node("a").id == "a"
        assert graph.get_node("missing") is None

    def test_missing_start_node(self):
        definition = make_definition([("end", "end")], [])

        with pytest.raises(MissingStartNodeError) as exc_info:
            WorkflowGraph(definition).validate()

        assert exc_info.value.message == "missing 'start' node"

    def test_missing_end_node(self):
        definition = make_definition([("start", "start")], [])

        with pytest.raises(MissingEndNodeError) as exc_info:
            WorkflowGraph(definition).validate()

        assert exc_info.value.message == "missing 'end' node"

    def test_missing_start_reported_before_missing_end(self):
        definition = make_definition([("form", "form")], [])

        with pytest.raises(MissingStartNodeError):
            WorkflowGraph(definition).validate()

    def test_dangling_edge_rejected(self):
        definition = make_definition(
            [("start", "start"), ("end", "end")],
            [{"source": "start", "target": "ghost"}]
        )

        with pytest.raises(GraphValidationError) as exc_info:
            WorkflowGraph(definition).validate()

        assert any("ghost" in error for error in exc_info.value.validation_errors)

    def test_validate_structure_collects_without_raising(self):
        definition = make_definition(
            [("form", "form")],
            [{"source": "form", "target": "ghost"}]
        )

        result = WorkflowGraph(definition).validate_structure()

        assert not result.is_valid
        assert len(result.errors) == 3

    def test_warnings_for_cycles_and_unreachable_nodes(self):
        definition = make_definition(
            [("start", "start"), ("a", "form"), ("orphan", "form"), ("end", "end")],
            [
                {"source": "start", "target": "a"},
                {"source": "a", "target": "start"},
                {"source": "a", "target": "end"},
            ]
        )
        graph = WorkflowGraph(definition)

        assert graph.has_cycles()
        result = graph.validate_structure()
        assert result.is_valid
        assert any("cycles" in warning for warning in result.warnings)
        assert any("orphan" in warning for warning in result.warnings)

    def test_sample_workflow_is_valid(self, weather_workflow):
        graph = WorkflowGraph(weather_workflow)

        graph.validate()
        assert not graph.has_cycles()
        assert graph.find_reachable("start") == {node.id for node in weather_workflow.nodes}
