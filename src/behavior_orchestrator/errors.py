"""
Orchestrator Exceptions

Graph errors are fatal to a run and raised before any behavior executes.
Everything else is contained to the behavior that raised it.
"""

from typing import Iterable, Optional


class OrchestratorError(Exception):
    """Base exception for orchestrator errors"""
    pass


class GraphError(OrchestratorError):
    """The behavior graph cannot be scheduled"""
    pass


class CycleDetectedError(GraphError):
    """Dependencies form a cycle"""

    def __init__(self, behavior_ids: Iterable[str]):
        self.behavior_ids = list(behavior_ids)
        super().__init__(
            "Cycle detected in behavior dependencies. "
            f"Stuck behaviors: {', '.join(self.behavior_ids)}"
        )


class DependencyNotFoundError(GraphError):
    """A behavior or dependency id is missing from the graph"""

    def __init__(self, behavior_id: str, required_by: Optional[str] = None):
        self.behavior_id = behavior_id
        self.required_by = required_by
        if required_by:
            message = f"Dependency not found: {behavior_id} (required by {required_by})"
        else:
            message = f"Behavior not found: {behavior_id}"
        super().__init__(message)


class GraphValidationError(GraphError):
    """A graph document failed validation"""
    pass


class StepExecutionError(OrchestratorError):
    """The action executor crashed while running a step"""
    pass


class BehaviorTimeoutError(OrchestratorError):
    """A behavior exceeded its time budget"""

    def __init__(self, title: str, timeout_ms: int):
        self.title = title
        self.timeout_ms = timeout_ms
        super().__init__(f'Behavior "{title}" timed out after {timeout_ms / 1000:g}s')


class JudgeError(OrchestratorError):
    """A judge raised while evaluating a condition"""

    def __init__(self, judge: str, cause: BaseException):
        self.judge = judge
        self.cause = cause
        super().__init__(f"Judge {judge} failed: {cause}")
