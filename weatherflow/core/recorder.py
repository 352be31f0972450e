"""Step Recorder accumulating the ordered trace of one traversal."""

from typing import Any, Dict, List

from ..models.core import Node, StepResult, StepStatus
from .exceptions import WorkflowEngineError


class StepRecorder:
    """Appends one StepResult per handler invocation, in visitation order."""

    def __init__(self):
        self._steps: List[StepResult] = []

    def record_success(self, node: Node, output: Dict[str, Any], duration_ms: int) -> StepResult:
        step_output = dict(output)
        step_output["duration"] = duration_ms
        return self._append(node, StepStatus.COMPLETED, step_output)

    def record_failure(self, node: Node, error: WorkflowEngineError, duration_ms: int) -> StepResult:
        return self._append(node, StepStatus.FAILED, {
            "error": error.message,
            "errorCode": error.error_code,
            "duration": duration_ms,
        })

    def _append(self, node: Node, status: StepStatus, output: Dict[str, Any]) -> StepResult:
        step = StepResult(
            node_id=node.id,
            type=node.type.value,
            label=node.data.label,
            description=node.data.description,
            status=status,
            output=output
        )
        self._steps.append(step)
        return step

    @property
    def steps(self) -> List[StepResult]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)
