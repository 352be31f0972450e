"""Indexed view over a workflow definition used by the execution engine."""

from typing import Dict, List, Optional, Set

from ..models.core import (
    END_NODE_ID,
    START_NODE_ID,
    Edge,
    Node,
    ValidationResult,
    WorkflowDefinition,
)
from .exceptions import GraphValidationError, MissingEndNodeError, MissingStartNodeError
from .logging import get_logger

logger = get_logger(__name__)


class WorkflowGraph:
    """Node and adjacency indexes built from a workflow definition.

    The definition is read-only for the lifetime of the graph. Adjacency
    lists keep edge declaration order so fan-out is deterministic.
    """

    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition
        self.nodes_by_id: Dict[str, Node] = {node.id: node for node in definition.nodes}
        self._outgoing: Dict[str, List[Edge]] = {}
        for edge in definition.edges:
            self._outgoing.setdefault(edge.source, []).append(edge)

    @property
    def adjacency(self) -> Dict[str, List[str]]:
        """Source node id to ordered target node ids."""
        return {
            source: [edge.target for edge in edges]
            for source, edges in self._outgoing.items()
        }

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes_by_id.get(node_id)

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return list(self._outgoing.get(node_id, []))

    def targets(self, node_id: str) -> List[str]:
        return [edge.target for edge in self._outgoing.get(node_id, [])]

    def validate(self) -> None:
        """
        Check the structure required before any traversal begins.

        Raises:
            MissingStartNodeError: If no node has the canonical start id
            MissingEndNodeError: If no node has the canonical end id
            GraphValidationError: If an edge references an unknown node
        """
        workflow_id = self.definition.id or None

        if START_NODE_ID not in self.nodes_by_id:
            raise MissingStartNodeError(workflow_id=workflow_id)
        if END_NODE_ID not in self.nodes_by_id:
            raise MissingEndNodeError(workflow_id=workflow_id)

        errors = self._invalid_references()
        if errors:
            raise GraphValidationError(
                f"Graph validation failed: {'; '.join(errors)}",
                validation_errors=errors,
                workflow_id=workflow_id
            )

    def validate_structure(self) -> ValidationResult:
        """Run every structural check and collect the results without raising."""
        errors = []
        if START_NODE_ID not in self.nodes_by_id:
            errors.append(MissingStartNodeError().message)
        if END_NODE_ID not in self.nodes_by_id:
            errors.append(MissingEndNodeError().message)
        errors.extend(self._invalid_references())

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=self.validation_warnings() if not errors else []
        )

    def validation_warnings(self) -> List[str]:
        """Diagnostics that never block execution."""
        warnings = []
        if self.has_cycles():
            warnings.append("Graph contains cycles; revisited nodes are skipped")

        if START_NODE_ID in self.nodes_by_id:
            unreachable = set(self.nodes_by_id) - self.find_reachable(START_NODE_ID)
            if unreachable:
                warnings.append(f"Unreachable nodes detected: {', '.join(sorted(unreachable))}")

        return warnings

    def find_reachable(self, entry_point: str) -> Set[str]:
        """Find all nodes reachable from the entry point."""
        reachable = {entry_point}
        queue = [entry_point]
        while queue:
            current = queue.pop(0)
            for neighbor in self.targets(current):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)
        return reachable

    def has_cycles(self) -> bool:
        """Check if the graph contains a directed cycle (iterative DFS)."""
        on_path, done = 1, 2
        state: Dict[str, int] = {}

        for root in self.nodes_by_id:
            if root in state:
                continue
            state[root] = on_path
            stack = [(root, iter(self.targets(root)))]
            while stack:
                node_id, children = stack[-1]
                for child in children:
                    child_state = state.get(child)
                    if child_state == on_path:
                        return True
                    if child_state is None:
                        state[child] = on_path
                        stack.append((child, iter(self.targets(child))))
                        break
                else:
                    state[node_id] = done
                    stack.pop()

        return False

    def _invalid_references(self) -> List[str]:
        errors = []
        for edge in self.definition.edges:
            if edge.source not in self.nodes_by_id:
                errors.append(f"Edge references non-existent source node: '{edge.source}'")
            if edge.target not in self.nodes_by_id:
                errors.append(f"Edge references non-existent target node: '{edge.target}'")
        return errors
