"""Execution Engine for workflow processing."""

import logging
import time
import uuid
from typing import Optional, Set

from ..models.core import (
    START_NODE_ID,
    ExecutePayload,
    ExecutionError,
    ExecutionResult,
    Node,
    NodeType,
    StepStatus,
    WorkflowDefinition,
    utc_timestamp,
)
from .context import ExecutionContext
from .exceptions import (
    HandlerRegistryError,
    NoMatchingConditionalEdgeError,
    NodeExecutionError,
)
from .graph import WorkflowGraph
from .handler_registry import HandlerRegistry
from .handlers import NodeOutcome
from .logging import get_logger, log_with_context, logging_context
from .recorder import StepRecorder

logger = get_logger(__name__)

CONDITION_MET_LABEL = "✓ Condition Met"
CONDITION_NOT_MET_LABEL = "✗ No Alert Needed"


class _Traversal:
    """State of a single walk: graph, context, trace and visited set."""

    def __init__(self, graph: WorkflowGraph, payload: ExecutePayload, run_id: str):
        self.graph = graph
        self.payload = payload
        self.run_id = run_id
        self.context = ExecutionContext(run_id)
        self.recorder = StepRecorder()
        self.visited: Set[str] = set()


class ExecutionEngine:
    """Depth-first workflow walker dispatching nodes to registered handlers.

    The engine itself holds no per-run state, so one instance can serve
    concurrent executions; each call to ``execute`` gets its own context and
    step trace.
    """

    def __init__(
        self,
        handler_registry: HandlerRegistry,
        condition_met_label: str = CONDITION_MET_LABEL,
        condition_not_met_label: str = CONDITION_NOT_MET_LABEL
    ):
        """Initialize the execution engine.

        Args:
            handler_registry: Registry resolving node types to handlers
            condition_met_label: Edge label followed when a condition holds
            condition_not_met_label: Edge label followed when a condition does not hold
        """
        self.handler_registry = handler_registry
        self.condition_met_label = condition_met_label
        self.condition_not_met_label = condition_not_met_label

    def execute(self, definition: WorkflowDefinition, payload: ExecutePayload) -> ExecutionResult:
        """
        Execute a workflow definition against a payload.

        Args:
            definition: Workflow graph to walk
            payload: Caller-supplied form data and condition

        Returns:
            The execution result. Handler and routing failures produce a
            ``failed`` result carrying the partial trace and the cause.

        Raises:
            GraphValidationError: If the graph lacks the start or end node or has dangling edges
            HandlerRegistryError: If a node type present in the graph has no handler
        """
        graph = WorkflowGraph(definition)
        graph.validate()
        self._check_handlers(graph)

        run_id = str(uuid.uuid4())
        traversal = _Traversal(graph, payload, run_id)

        with logging_context(run_id=run_id, workflow_id=definition.id or None):
            if graph.has_cycles():
                logger.warning("Workflow contains cycles; revisited nodes will be skipped")

            logger.info(f"Started workflow execution for {definition.id or '<unnamed>'}")

            error: Optional[ExecutionError] = None
            try:
                self._traverse(traversal)
            except NodeExecutionError as e:
                error = ExecutionError(code=e.error_code, message=e.message, node_id=e.context.get("node_id"))
            except NoMatchingConditionalEdgeError as e:
                logger.warning(f"Routing failed: {e.message}")
                error = ExecutionError(code=e.error_code, message=e.message, node_id=e.node_id)

            status = StepStatus.FAILED if error else StepStatus.COMPLETED
            result = ExecutionResult(
                executed_at=utc_timestamp(),
                status=status,
                steps=traversal.recorder.steps,
                error=error
            )

            logger.info(f"Workflow execution {status.value}: {len(result.steps)} steps")
        return result

    def _check_handlers(self, graph: WorkflowGraph) -> None:
        missing = sorted({node.type.value for node in graph.definition.nodes if not self.handler_registry.has(node.type)})
        if missing:
            raise HandlerRegistryError(
                f"No handler registered for node types: {', '.join(missing)}",
                operation="execute"
            )

    def _traverse(self, traversal: _Traversal) -> None:
        """Depth-first walk from the start node.

        Uses an explicit stack so long chains do not hit the interpreter's
        recursion limit. Targets are pushed in reverse so they are visited in
        edge declaration order.
        """
        pending = [START_NODE_ID]
        while pending:
            node_id = pending.pop()
            if node_id in traversal.visited:
                continue
            traversal.visited.add(node_id)

            node = traversal.graph.get_node(node_id)
            outcome = self._execute_node(traversal, node)

            if node.type == NodeType.CONDITION:
                pending.append(self._select_branch(traversal.graph, node, bool(outcome.condition_met)))
            else:
                pending.extend(reversed(traversal.graph.targets(node.id)))

    def _execute_node(self, traversal: _Traversal, node: Node) -> NodeOutcome:
        """
        Run the handler for a node and record the step.

        Raises:
            NodeExecutionError: After recording a failed step
        """
        handler = self.handler_registry.get(node.type)

        start_time = time.perf_counter()
        try:
            outcome = handler(node, traversal.payload, traversal.context)
        except NodeExecutionError as e:
            duration = self._elapsed_ms(start_time)
            e.add_context(node_id=node.id, run_id=traversal.run_id)
            e.add_details(execution_time=duration)
            traversal.recorder.record_failure(node, e, duration)
            log_with_context(
                logger, logging.WARNING,
                f"Node {node.id} failed: {e.message}",
                node_id=node.id, node_type=node.type.value, duration=duration, error_code=e.error_code
            )
            raise
        except Exception as e:
            duration = self._elapsed_ms(start_time)
            wrapped = NodeExecutionError(f"Node {node.id} execution failed: {e}", node_id=node.id)
            wrapped.add_context(run_id=traversal.run_id)
            wrapped.add_details(execution_time=duration, original_error=type(e).__name__)
            traversal.recorder.record_failure(node, wrapped, duration)
            logger.error(f"Unexpected error in node {node.id}", exc_info=True)
            raise wrapped from e

        if outcome is None:
            outcome = NodeOutcome()
        elif isinstance(outcome, dict):
            outcome = NodeOutcome(output=outcome, condition_met=outcome.get("conditionMet"))

        duration = self._elapsed_ms(start_time)
        traversal.recorder.record_success(node, outcome.output, duration)
        log_with_context(
            logger, logging.DEBUG,
            f"Completed execution of node {node.id}",
            node_id=node.id, node_type=node.type.value, duration=duration
        )
        return outcome

    def _select_branch(self, graph: WorkflowGraph, node: Node, condition_met: bool) -> str:
        """
        Pick the target of the outgoing edge labelled for the condition outcome.

        Raises:
            NoMatchingConditionalEdgeError: If no outgoing edge carries the label
        """
        expected_label = self.condition_met_label if condition_met else self.condition_not_met_label
        for edge in graph.outgoing_edges(node.id):
            if edge.label == expected_label:
                return edge.target
        raise NoMatchingConditionalEdgeError(node.id, expected_label)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

