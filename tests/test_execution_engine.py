"""Tests for the depth-first execution engine."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from weatherflow.core.exceptions import (
    HandlerRegistryError,
    MissingEndNodeError,
    MissingStartNodeError,
    NodeExecutionError,
)
from weatherflow.core.execution_engine import ExecutionEngine, _Traversal
from weatherflow.core.graph import WorkflowGraph
from weatherflow.core.handler_registry import create_default_registry
from weatherflow.models.core import ExecutePayload, StepStatus

from conftest import make_definition, make_weather_stub


def step_ids(result):
    return [step.node_id for step in result.steps]


def registry_with_temperature(temperature):
    registry = create_default_registry()
    registry.replace("weather-api", make_weather_stub(temperature))
    return registry


class TestStructuralErrors:
    """Graph problems are raised before any step runs."""

    def test_missing_start_node(self, execution_engine, payload):
        definition = make_definition([("end", "end")], [])

        with pytest.raises(MissingStartNodeError):
            execution_engine.execute(definition, payload)

    def test_missing_end_node(self, execution_engine, payload):
        definition = make_definition([("start", "start")], [])

        with pytest.raises(MissingEndNodeError):
            execution_engine.execute(definition, payload)

    def test_missing_handler(self, payload, weather_workflow):
        registry = registry_with_temperature(30.0)
        registry.unregister("email")

        with pytest.raises(HandlerRegistryError) as exc_info:
            ExecutionEngine(registry).execute(weather_workflow, payload)

        assert "email" in exc_info.value.message


class TestTraversal:
    """Test cases for traversal order and routing."""

    def test_start_to_end(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("end", "end")],
            [{"source": "start", "target": "end"}]
        )

        result = execution_engine.execute(definition, payload)

        assert result.status == StepStatus.COMPLETED
        assert result.error is None
        assert step_ids(result) == ["start", "end"]
        assert all(step.status == StepStatus.COMPLETED for step in result.steps)
        assert all(isinstance(step.output["duration"], int) for step in result.steps)

    def test_weather_alert_condition_met(self, execution_engine, payload, weather_workflow):
        result = execution_engine.execute(weather_workflow, payload)

        assert result.status == StepStatus.COMPLETED
        assert step_ids(result) == ["start", "form", "weather-api", "condition", "email", "end"]
        condition_step = result.steps[3]
        assert condition_step.type == "condition"
        assert condition_step.output["conditionMet"] is True
        email_step = result.steps[4]
        assert email_step.output["emailDraft"]["body"] == "Weather alert for Sydney! Temperature is 30.0°C!"
        assert result.executed_at.endswith("Z")

    def test_weather_alert_condition_not_met(self, payload, weather_workflow):
        engine = ExecutionEngine(registry_with_temperature(20.0))

        result = engine.execute(weather_workflow, payload)

        assert result.status == StepStatus.COMPLETED
        assert step_ids(result) == ["start", "form", "weather-api", "condition", "end"]
        assert result.steps[3].output["conditionMet"] is False

    def test_no_matching_conditional_edge(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("weather", "weather-api"), ("condition", "condition"), ("end", "end")],
            [
                {"source": "start", "target": "weather"},
                {"source": "weather", "target": "condition"},
                {"source": "condition", "target": "end", "label": "yes"},
            ]
        )

        result = execution_engine.execute(definition, payload)

        assert result.status == StepStatus.FAILED
        assert result.error.code == "NoMatchingConditionalEdgeError"
        assert result.error.node_id == "condition"
        assert result.error.message == "no matching conditional edge for node condition"
        assert step_ids(result) == ["start", "weather", "condition"]
        assert result.steps[-1].status == StepStatus.COMPLETED

    def test_custom_branch_labels(self, payload):
        definition = make_definition(
            [("start", "start"), ("weather", "weather-api"), ("condition", "condition"),
             ("alert", "email"), ("end", "end")],
            [
                {"source": "start", "target": "weather"},
                {"source": "weather", "target": "condition"},
                {"source": "condition", "target": "end", "label": "no"},
                {"source": "condition", "target": "alert", "label": "yes"},
            ]
        )
        engine = ExecutionEngine(
            registry_with_temperature(30.0), condition_met_label="yes", condition_not_met_label="no"
        )

        result = engine.execute(definition, payload)

        # the alert node has no template, so routing reached it and it failed there
        assert step_ids(result) == ["start", "weather", "condition", "alert"]
        assert result.error.code == "MissingEmailTemplateError"

    def test_fan_out_follows_edge_order(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("a", "form"), ("b", "form"), ("end", "end")],
            [
                {"source": "start", "target": "b"},
                {"source": "start", "target": "a"},
                {"source": "a", "target": "end"},
                {"source": "b", "target": "end"},
            ]
        )

        result = execution_engine.execute(definition, payload)

        assert step_ids(result) == ["start", "b", "end", "a"]

    def test_cycle_revisit_is_skipped(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("form", "form"), ("end", "end")],
            [
                {"source": "start", "target": "form"},
                {"source": "form", "target": "start"},
                {"source": "form", "target": "end"},
            ]
        )

        result = execution_engine.execute(definition, payload)

        assert result.status == StepStatus.COMPLETED
        assert step_ids(result) == ["start", "form", "end"]

    def test_weather_lookup_alias(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("weather", "weather-lookup"), ("end", "end")],
            [
                {"source": "start", "target": "weather"},
                {"source": "weather", "target": "end"},
            ]
        )

        result = execution_engine.execute(definition, payload)

        assert result.steps[1].type == "weather-api"
        assert result.steps[1].output["temperature"] == 30.0


class TestHandlerFailures:
    """Handler failures record a failed step and halt."""

    def test_form_failure_halts(self, execution_engine, weather_workflow):
        payload = ExecutePayload.model_validate({
            "formData": {"email": "a@example.com", "city": "Sydney"},
            "condition": {"operator": "greater_than", "threshold": 25},
        })

        result = execution_engine.execute(weather_workflow, payload)

        assert result.status == StepStatus.FAILED
        assert step_ids(result) == ["start", "form"]
        failed_step = result.steps[-1]
        assert failed_step.status == StepStatus.FAILED
        assert failed_step.output["error"] == "name is required"
        assert failed_step.output["errorCode"] == "MissingNameError"
        assert "duration" in failed_step.output
        assert result.error.code == "MissingNameError"
        assert result.error.node_id == "form"

    def test_unexpected_exception_is_wrapped(self, payload, weather_workflow):
        def broken(node, payload, context):
            raise RuntimeError("socket closed")

        registry = create_default_registry()
        registry.replace("weather-api", broken)

        result = ExecutionEngine(registry).execute(weather_workflow, payload)

        assert result.status == StepStatus.FAILED
        assert step_ids(result) == ["start", "form", "weather-api"]
        assert result.error.code == "NodeExecutionError"
        assert "socket closed" in result.error.message
        assert result.error.node_id == "weather-api"

    def test_wrapped_error_carries_execution_time(self, payload, weather_workflow):
        def broken(node, payload, context):
            raise RuntimeError("socket closed")

        registry = registry_with_temperature(30.0)
        registry.replace("email", broken)
        engine = ExecutionEngine(registry)
        graph = WorkflowGraph(weather_workflow)
        traversal = _Traversal(graph, payload, "run-1")

        with pytest.raises(NodeExecutionError) as exc_info:
            engine._execute_node(traversal, graph.get_node("email"))

        error = exc_info.value
        assert isinstance(error.details["execution_time"], int)
        assert error.details["original_error"] == "RuntimeError"
        assert isinstance(error.__cause__, RuntimeError)
        assert traversal.recorder.steps[-1].output["duration"] == error.details["execution_time"]

    def test_condition_without_temperature(self, execution_engine, payload):
        definition = make_definition(
            [("start", "start"), ("condition", "condition"), ("end", "end")],
            [{"source": "start", "target": "condition"}]
        )

        result = execution_engine.execute(definition, payload)

        assert result.error.code == "MissingContextValueError"
        assert result.steps[-1].status == StepStatus.FAILED


class TestHandlerReturnValues:
    """Handlers may return an outcome, a plain dict or nothing."""

    def test_dict_and_none_outputs(self, payload):
        registry = create_default_registry()
        registry.replace("start", lambda node, payload, context: None)
        registry.replace("end", lambda node, payload, context: {"done": True})
        definition = make_definition(
            [("start", "start"), ("end", "end")],
            [{"source": "start", "target": "end"}]
        )

        result = ExecutionEngine(registry).execute(definition, payload)

        assert set(result.steps[0].output) == {"duration"}
        assert result.steps[1].output["done"] is True


class TestConcurrentExecutions:
    """One engine instance serves independent concurrent runs."""

    def test_runs_do_not_share_state(self, execution_engine, weather_workflow):
        def run(city):
            payload = ExecutePayload.model_validate({
                "formData": {"name": "N", "email": "n@example.com", "city": city},
                "condition": {"operator": "greater_than", "threshold": 25},
            })
            return execution_engine.execute(weather_workflow, payload)

        cities = ["Sydney", "Perth", "Hobart", "Darwin"] * 3
        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(run, cities))

        for city, result in zip(cities, results):
            assert len(result.steps) == 6
            assert result.steps[1].output["city"] == city
            assert city in result.steps[4].output["emailDraft"]["body"]


def test_equals_condition_follows_met_edge(weather_workflow):
    payload = ExecutePayload.model_validate({
        "formData": {"name": "Bob", "email": "bob@example.com", "city": "Melbourne"},
        "condition": {"operator": "equals", "threshold": 21.0},
    })

    result = ExecutionEngine(registry_with_temperature(21.0)).execute(weather_workflow, payload)

    assert result.status == StepStatus.COMPLETED
    assert len(result.steps) == 6
    assert all(step.status == StepStatus.COMPLETED for step in result.steps)
    assert result.steps[4].node_id == "email"


class TestDeepGraphs:
    """Long chains run without hitting the interpreter recursion limit."""

    DEPTH = 2000

    def chain(self, closed=False):
        middle = [f"form-{index}" for index in range(self.DEPTH)]
        path = ["start", *middle, "end"]
        edges = [{"source": source, "target": target} for source, target in zip(path, path[1:])]
        if closed:
            edges.append({"source": middle[-1], "target": middle[0]})
        nodes = [("start", "start"), *[(node_id, "form") for node_id in middle], ("end", "end")]
        return make_definition(nodes, edges)

    def test_long_chain_executes(self, execution_engine, payload):
        result = execution_engine.execute(self.chain(), payload)

        assert result.status == StepStatus.COMPLETED
        assert len(result.steps) == self.DEPTH + 2
        assert result.steps[-1].node_id == "end"

    def test_cycle_detection_on_long_chain(self):
        assert not WorkflowGraph(self.chain()).has_cycles()
        assert WorkflowGraph(self.chain(closed=True)).has_cycles()
