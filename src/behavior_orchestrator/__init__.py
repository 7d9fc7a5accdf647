"""
Behavior Orchestrator

Verifies that an interactive application satisfies a dependency graph of
declared behaviors. Schedules behaviors against a single stateful page,
cascades failures to dependents, carries credentials between behaviors and
reconciles two unreliable judges into one verdict per check.
"""

__version__ = "1.0.0"

from .orchestrator import BehaviorOrchestrator, RunState

from .main import (
    Behavior,
    BehaviorResult,
    BehaviorStatus,
    CheckType,
    Dependency,
    ExecutionStrategy,
    OrchestratorConfig,
    Scenario,
    SessionMode,
    Step,
    StepKind,
    VerificationSummary,
)

from .errors import (
    BehaviorTimeoutError,
    CycleDetectedError,
    DependencyNotFoundError,
    GraphError,
    GraphValidationError,
    JudgeError,
    OrchestratorError,
    StepExecutionError,
)

from .context import VerificationContext
from .credentials import CredentialTracker
from .graph import build_dependency_chain, build_transitive_dependents_map, topological_sort
from .loader import load_behaviors, load_behaviors_file
from .summary import calculate_reward, create_verification_summary

__all__ = [
    # Orchestrator
    "BehaviorOrchestrator",
    "RunState",
    # Model
    "Behavior",
    "BehaviorResult",
    "BehaviorStatus",
    "CheckType",
    "Dependency",
    "ExecutionStrategy",
    "OrchestratorConfig",
    "Scenario",
    "SessionMode",
    "Step",
    "StepKind",
    "VerificationSummary",
    # Errors
    "BehaviorTimeoutError",
    "CycleDetectedError",
    "DependencyNotFoundError",
    "GraphError",
    "GraphValidationError",
    "JudgeError",
    "OrchestratorError",
    "StepExecutionError",
    # Components
    "VerificationContext",
    "CredentialTracker",
    "build_dependency_chain",
    "build_transitive_dependents_map",
    "topological_sort",
    "load_behaviors",
    "load_behaviors_file",
    "calculate_reward",
    "create_verification_summary",
    # Meta
    "__version__",
]
