"""
Configuration and Types for the Behavior Orchestrator

Graph model (behaviors, scenarios, steps), per-run results and the
orchestrator configuration.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BehaviorStatus(Enum):
    """Terminal status of a behavior within one run"""
    PASS = "pass"
    FAIL = "fail"
    DEPENDENCY_FAILED = "dependency_failed"


class StepKind(Enum):
    """Step types inside a scenario"""
    ACT = "act"
    CHECK = "check"


class CheckType(Enum):
    """How a check step is evaluated"""
    DETERMINISTIC = "deterministic"
    SEMANTIC = "semantic"


class SessionMode(Enum):
    """Session preparation applied before a scenario runs"""
    HARD_RESET = "hard_reset"
    SOFT_NAVIGATE = "soft_navigate"
    PRESERVE = "preserve"


class ExecutionStrategy(Enum):
    """Run-level scheduling strategy"""
    CONTINUOUS = "continuous"
    ISOLATED = "isolated"


# Auth behaviors run first, in this order, when present in the graph
AUTH_ORDER = ["sign-up", "sign-out", "invalid-sign-in", "sign-in"]


# =========================================================================
# Graph Model
# =========================================================================

@dataclass(frozen=True)
class Step:
    """A single instruction: an action to perform or a condition to check"""
    kind: StepKind
    instruction: str
    check_type: Optional[CheckType] = None

    @classmethod
    def act(cls, instruction: str) -> "Step":
        return cls(kind=StepKind.ACT, instruction=instruction)

    @classmethod
    def check(cls, instruction: str, check_type: Optional[CheckType] = None) -> "Step":
        """Build a check step, classifying it from its text when no type is given"""
        if check_type is None:
            from .instructions import classify_check

            check_type = classify_check(instruction)
        return cls(kind=StepKind.CHECK, instruction=instruction, check_type=check_type)

    @property
    def is_act(self) -> bool:
        return self.kind == StepKind.ACT

    @property
    def is_check(self) -> bool:
        return self.kind == StepKind.CHECK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "instruction": self.instruction,
            "check_type": self.check_type.value if self.check_type else None,
        }


@dataclass(frozen=True)
class Scenario:
    """One concrete, steppable execution path for a behavior"""
    name: str
    steps: List[Step] = field(default_factory=list)


@dataclass(frozen=True)
class Dependency:
    """Edge to a prerequisite behavior, optionally pinned to one of its scenarios"""
    behavior_id: str
    scenario_name: Optional[str] = None


@dataclass(frozen=True)
class Behavior:
    """
    A named, independently verifiable unit of application functionality.

    Behaviors are built by the graph source at run start and never mutated.
    """
    id: str
    title: str
    description: str = ""
    dependencies: List[Dependency] = field(default_factory=list)
    scenarios: List[Scenario] = field(default_factory=list)
    page_path: Optional[str] = None

    @property
    def dependency_ids(self) -> List[str]:
        return [dep.behavior_id for dep in self.dependencies]

    def get_scenario(self, name: Optional[str] = None) -> Optional[Scenario]:
        """Return the named scenario, falling back to the first one"""
        if name:
            for scenario in self.scenarios:
                if scenario.name == name:
                    return scenario
        return self.scenarios[0] if self.scenarios else None


@dataclass(frozen=True)
class ChainStep:
    """One member of a resolved dependency chain"""
    behavior: Behavior
    scenario_name: Optional[str] = None


# =========================================================================
# Results
# =========================================================================

@dataclass
class BehaviorResult:
    """
    Outcome of a single behavior within a run.

    Recorded exactly once per behavior in the VerificationContext.
    """
    behavior_id: str
    behavior_name: str
    status: BehaviorStatus
    error: Optional[str] = None
    failed_dependency: Optional[str] = None
    duration_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.status == BehaviorStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "behavior_id": self.behavior_id,
            "behavior_name": self.behavior_name,
            "status": self.status.value,
            "error": self.error,
            "failed_dependency": self.failed_dependency,
            "duration_ms": self.duration_ms,
        }


@dataclass
class StepResult:
    """Outcome of one step"""
    step: Step
    success: bool
    duration_ms: int = 0
    error: Optional[str] = None
    actual: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.to_dict(),
            "success": self.success,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "actual": self.actual,
        }


@dataclass
class FailureContext:
    """Diagnostics captured at the step where a scenario failed"""
    step_index: int
    step: Step
    error: str
    page_url: str = ""
    page_title: str = ""
    visible_elements: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_index": self.step_index,
            "step": self.step.to_dict(),
            "error": self.error,
            "page_url": self.page_url,
            "page_title": self.page_title,
            "visible_elements": self.visible_elements,
            "suggestions": self.suggestions,
        }


@dataclass
class ScenarioResult:
    """Outcome of running one scenario against the live page"""
    scenario_name: str
    success: bool
    steps: List[StepResult] = field(default_factory=list)
    duration_ms: int = 0
    failed_at: Optional[FailureContext] = None

    @property
    def error(self) -> Optional[str]:
        return self.failed_at.error if self.failed_at else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_name": self.scenario_name,
            "success": self.success,
            "steps": [s.to_dict() for s in self.steps],
            "duration_ms": self.duration_ms,
            "failed_at": self.failed_at.to_dict() if self.failed_at else None,
        }


@dataclass
class VerificationSummary:
    """Aggregate outcome of a run"""
    passed: int
    failed: int
    dependency_failed: int
    total: int
    reward: float
    summary: str
    behaviors: List[BehaviorResult] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "dependency_failed": self.dependency_failed,
            "total": self.total,
            "reward": self.reward,
            "summary": self.summary,
            "behaviors": [b.to_dict() for b in self.behaviors],
            "duration_ms": self.duration_ms,
        }


# =========================================================================
# Configuration
# =========================================================================

@dataclass
class OrchestratorConfig:
    """Orchestrator configuration"""
    name: str = "behavior-orchestrator"
    version: str = "1.0.0"

    # Scheduling
    strategy: ExecutionStrategy = ExecutionStrategy.CONTINUOUS
    auth_order: List[str] = field(default_factory=lambda: list(AUTH_ORDER))
    strict_chain_cycles: bool = False

    # Timeouts
    behavior_timeout_ms: int = 120000  # 2 minutes
    check_timeout_ms: int = 90000

    # Check retry settings
    check_max_attempts: int = 3
    check_retry_delay_ms: int = 1000

    # Act steps are retried on transient executor errors only
    act_max_attempts: int = 3

    # Credentials are injected into the first N act steps only
    credential_injection_window: int = 5

    # Target application
    base_url: str = field(
        default_factory=lambda: os.getenv("APP_BASE_URL", "http://localhost:3000")
    )
    probe_ports: List[int] = field(default_factory=lambda: [3000, 5173, 8080, 4200, 3001])

    # Run events
    event_gateway_url: Optional[str] = field(
        default_factory=lambda: os.getenv("EVENT_GATEWAY_URL")
    )
    event_timeout_ms: int = 5000
    enable_events: bool = True

    def __post_init__(self):
        if isinstance(self.strategy, str):
            self.strategy = ExecutionStrategy(self.strategy.lower())

    @classmethod
    def from_yaml(cls, path: str) -> "OrchestratorConfig":
        """Load config from YAML file"""
        import yaml

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Load config from environment variables"""
        return cls(
            strategy=os.getenv("ORCH_STRATEGY", "continuous"),
            base_url=os.getenv("ORCH_BASE_URL", os.getenv("APP_BASE_URL", "http://localhost:3000")),
            behavior_timeout_ms=int(os.getenv("ORCH_BEHAVIOR_TIMEOUT_MS", "120000")),
            check_max_attempts=int(os.getenv("ORCH_CHECK_MAX_ATTEMPTS", "3")),
            check_retry_delay_ms=int(os.getenv("ORCH_CHECK_RETRY_DELAY_MS", "1000")),
            credential_injection_window=int(os.getenv("ORCH_CREDENTIAL_WINDOW", "5")),
            strict_chain_cycles=os.getenv("ORCH_STRICT_CHAIN_CYCLES", "false").lower() == "true",
            event_gateway_url=os.getenv("ORCH_EVENT_GATEWAY_URL") or None,
        )
