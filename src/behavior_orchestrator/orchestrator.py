"""
Behavior Orchestrator - Core Orchestration Logic

Verifies a dependency graph of behaviors against a single stateful page.
Behaviors run strictly one at a time; a failure is recorded once and
cascades to everything that transitively depends on it.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TypeVar

from .adapters.base import ActionExecutor, Judge, PageAdapter
from .context import VerificationContext
from .credentials import CredentialTracker, capture_credentials, process_steps_with_credentials
from .errors import BehaviorTimeoutError
from .events import EventSink
from .graph import (
    build_dependency_chain,
    build_transitive_dependents_map,
    cascade_skip,
    partition_behaviors,
    topological_sort,
)
from .instructions import is_account_creation_behavior
from .logging_config import log_context
from .main import (
    Behavior,
    BehaviorResult,
    BehaviorStatus,
    ExecutionStrategy,
    OrchestratorConfig,
    Scenario,
    ScenarioResult,
    SessionMode,
    VerificationSummary,
)
from .runner import RunOptions, ScenarioRunner
from .session import SessionController
from .summary import create_verification_summary
from .verification import DualOracleVerifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

EVENT_STATUS = {
    "run.started": "start",
    "run.completed": "success",
    "behavior.started": "start",
    "behavior.passed": "success",
    "behavior.failed": "fail",
    "behavior.skipped": "skipped",
}


@dataclass
class RunState:
    """Everything one verification run accumulates"""
    behaviors: Dict[str, Behavior]
    context: VerificationContext
    credentials: CredentialTracker
    transitive_map: Dict[str, Set[str]]
    skip_set: Set[str] = field(default_factory=set)
    results: List[BehaviorResult] = field(default_factory=list)
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    session_started: bool = False


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


def _failed(behavior: Behavior, error: str, duration_ms: int = 0) -> BehaviorResult:
    return BehaviorResult(
        behavior_id=behavior.id,
        behavior_name=behavior.title,
        status=BehaviorStatus.FAIL,
        error=error,
        duration_ms=duration_ms,
    )


def _dependency_failed(
    behavior: Behavior,
    failed_dependency: str,
    error: Optional[str] = None,
    duration_ms: int = 0,
) -> BehaviorResult:
    return BehaviorResult(
        behavior_id=behavior.id,
        behavior_name=behavior.title,
        status=BehaviorStatus.DEPENDENCY_FAILED,
        error=error,
        failed_dependency=failed_dependency,
        duration_ms=duration_ms,
    )


class BehaviorOrchestrator:
    """
    Verification orchestration engine.

    Two mutually exclusive strategies:
    1. Continuous - one session, behaviors in dependency order, each one
       continuing from the state the previous one left behind
    2. Isolated - every non-auth behavior replays its whole dependency
       chain from a clean session

    In both, the auth behaviors run first as a fixed sequence, and every
    behavior execution is raced against the behavior timeout.
    """

    def __init__(
        self,
        page: PageAdapter,
        executor: ActionExecutor,
        diff_judge: Judge,
        state_judge: Judge,
        config: Optional[OrchestratorConfig] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self.config = config or OrchestratorConfig()
        self.page = page
        self.executor = executor
        self.session = SessionController(
            page, executor, self.config.base_url, self.config.probe_ports,
        )
        self.verifier = DualOracleVerifier.from_config(diff_judge, state_judge, self.config)
        self.runner = ScenarioRunner(page, executor, self.verifier, self.session, self.config)
        self._event_sink = event_sink if event_sink is not None else EventSink.from_config(self.config)
        self._event_handlers: Dict[str, List[Callable]] = {}
        self._state: Optional[RunState] = None

        # Statistics
        self._stats = {
            "runs": 0,
            "behaviors_executed": 0,
            "behaviors_passed": 0,
            "behaviors_failed": 0,
            "behaviors_skipped": 0,
            "scenarios_executed": 0,
            "timeouts": 0,
        }

        logger.info(
            f"Behavior orchestrator initialized - {self.config.name} v{self.config.version} "
            f"({self.config.strategy.value})"
        )

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def verify_all(
        self,
        behaviors: Dict[str, Behavior],
        strategy: Optional[ExecutionStrategy] = None,
    ) -> VerificationSummary:
        """
        Verify every behavior in the graph.

        Raises:
            CycleDetectedError: The graph has a cycle
            DependencyNotFoundError: A dependency id is missing
        """
        strategy = strategy or self.config.strategy
        start = time.time()

        # Graph errors are fatal and surface before anything executes
        ordered = topological_sort(behaviors)
        state = RunState(
            behaviors=dict(behaviors),
            context=VerificationContext(),
            credentials=CredentialTracker(),
            transitive_map=build_transitive_dependents_map(behaviors),
        )
        self._state = state
        self._stats["runs"] += 1

        with log_context(run_id=state.run_id):
            logger.info(
                f"Verifying {len(behaviors)} behaviors ({strategy.value}): "
                f"{' -> '.join(b.id for b in ordered)}"
            )
            await self._emit_event("run.started", state, strategy=strategy.value, total=len(behaviors))

            if strategy == ExecutionStrategy.CONTINUOUS:
                await self._verify_continuous(state, ordered)
            else:
                await self._verify_isolated(state, ordered)

            summary = create_verification_summary(state.results, _elapsed_ms(start))
            logger.info(f"{summary.summary} (reward {summary.reward:.2f})")
            await self._emit_event(
                "run.completed", state,
                passed=summary.passed,
                failed=summary.failed,
                dependency_failed=summary.dependency_failed,
                reward=summary.reward,
                summary=summary,
            )
        return summary

    async def verify_continuous(self, behaviors: Dict[str, Behavior]) -> VerificationSummary:
        return await self.verify_all(behaviors, ExecutionStrategy.CONTINUOUS)

    async def verify_isolated(self, behaviors: Dict[str, Behavior]) -> VerificationSummary:
        return await self.verify_all(behaviors, ExecutionStrategy.ISOLATED)

    # =========================================================================
    # Strategies
    # =========================================================================

    async def _verify_continuous(self, state: RunState, ordered: List[Behavior]) -> None:
        auth, rest = partition_behaviors(ordered, self.config.auth_order)
        await self._run_auth_sequence(state, auth)

        for behavior in rest:
            if await self._precheck(state, behavior):
                continue

            if not state.session_started:
                mode = SessionMode.HARD_RESET
            elif behavior.page_path:
                mode = SessionMode.SOFT_NAVIGATE
            else:
                mode = SessionMode.PRESERVE

            result = await self._execute(
                state, behavior, RunOptions(mode=mode, page_path=behavior.page_path),
            )
            await self._record(state, result)

    async def _verify_isolated(self, state: RunState, ordered: List[Behavior]) -> None:
        auth, _ = partition_behaviors(ordered, self.config.auth_order)
        auth_ids = {behavior.id for behavior in auth}
        await self._run_auth_sequence(state, auth)

        for behavior in state.behaviors.values():
            if behavior.id in auth_ids:
                continue
            if await self._precheck(state, behavior):
                continue

            state.credentials.reset()
            start = time.time()
            await self._emit_event("behavior.started", state, behavior_id=behavior.id)
            self._stats["behaviors_executed"] += 1
            try:
                result = await self.with_timeout(self._verify_chain(state, behavior), behavior)
            except BehaviorTimeoutError as e:
                self._stats["timeouts"] += 1
                logger.warning(str(e))
                result = _failed(behavior, str(e), _elapsed_ms(start))
            await self._record(state, result)

    async def _run_auth_sequence(self, state: RunState, auth: List[Behavior]) -> None:
        """
        Run the auth behaviors in their fixed order.

        Only the first one starts from a clean session; the rest continue
        from where the previous one left off. When the first (account
        creation) does not pass, the rest cannot meaningfully run.
        """
        if not auth:
            return

        logger.info(f"Auth flow: {' -> '.join(b.title for b in auth)}")
        first = auth[0]

        for index, behavior in enumerate(auth):
            if await self._precheck(state, behavior):
                continue

            if index > 0:
                gate = state.context.get_result(first.id)
                if gate is not None and not gate.passed:
                    await self._record(state, _dependency_failed(behavior, first.title))
                    continue

            fresh = index == 0 or not state.session_started
            options = RunOptions(
                mode=SessionMode.HARD_RESET if fresh else SessionMode.PRESERVE,
                # Sign-in may follow a behavior that left its form dirty
                reload_page=index > 0 and behavior.id == "sign-in",
            )
            result = await self._execute(state, behavior, options)
            await self._record(state, result)

    async def _verify_chain(self, state: RunState, target: Behavior) -> BehaviorResult:
        """
        Replay the target's dependency chain from a clean session, then the target.

        A failing or crashing chain member makes the target DEPENDENCY_FAILED.
        The chain's own outcomes are never recorded in the shared context.
        """
        start = time.time()
        chain = build_dependency_chain(target.id, state.behaviors, strict=self.config.strict_chain_cycles)
        logger.info(f"Chain for {target.id}: {' -> '.join(link.behavior.id for link in chain)}")

        for index, link in enumerate(chain):
            member = link.behavior
            is_target = member.id == target.id

            if index == 0:
                mode = SessionMode.HARD_RESET
            elif member.page_path:
                mode = SessionMode.SOFT_NAVIGATE
            else:
                mode = SessionMode.PRESERVE

            try:
                outcome = await self._run_scenario(
                    state, member, RunOptions(mode=mode, page_path=member.page_path), link.scenario_name,
                )
            except Exception as e:
                logger.error(f"Chain member {member.id} crashed: {e}")
                if is_target:
                    return _failed(target, f"Runner crash: {e}", _elapsed_ms(start))
                return _dependency_failed(
                    target, member.title, f'Dependency "{member.title}" crashed: {e}', _elapsed_ms(start),
                )

            if outcome is None:
                error = f"No scenarios found for behavior: {member.title}"
                if is_target:
                    return _failed(target, error, _elapsed_ms(start))
                return _dependency_failed(
                    target, member.title, f'Dependency "{member.title}" failed: {error}', _elapsed_ms(start),
                )

            if not outcome.success:
                if is_target:
                    return _failed(target, outcome.error or "Scenario failed", _elapsed_ms(start))
                return _dependency_failed(
                    target, member.title,
                    f'Dependency "{member.title}" failed: {outcome.error}',
                    _elapsed_ms(start),
                )

        return BehaviorResult(
            behavior_id=target.id,
            behavior_name=target.title,
            status=BehaviorStatus.PASS,
            duration_ms=_elapsed_ms(start),
        )

    # =========================================================================
    # Behavior Execution
    # =========================================================================

    async def _precheck(self, state: RunState, behavior: Behavior) -> bool:
        """Record DEPENDENCY_FAILED and return True when the behavior cannot run"""
        if behavior.id in state.skip_set:
            failed_dependency = state.context.find_failed_dependency(behavior)
            await self._record(state, _dependency_failed(behavior, failed_dependency))
            return True

        decision = state.context.should_skip(behavior.dependency_ids)
        if decision.skip:
            await self._record(
                state, _dependency_failed(behavior, decision.failed_dependency, decision.reason),
            )
            return True

        return False

    async def _execute(self, state: RunState, behavior: Behavior, options: RunOptions) -> BehaviorResult:
        """Run a behavior's first scenario under the behavior timeout"""
        start = time.time()
        await self._emit_event("behavior.started", state, behavior_id=behavior.id)
        self._stats["behaviors_executed"] += 1

        try:
            outcome = await self.with_timeout(self._run_scenario(state, behavior, options), behavior)
        except BehaviorTimeoutError as e:
            self._stats["timeouts"] += 1
            logger.warning(str(e))
            return _failed(behavior, str(e), _elapsed_ms(start))
        except Exception as e:
            logger.error(f"Behavior {behavior.id} crashed: {e}")
            return _failed(behavior, f"Unexpected error: {e}", _elapsed_ms(start))
        finally:
            state.session_started = True

        if outcome is None:
            return _failed(behavior, f"No scenarios found for behavior: {behavior.title}", _elapsed_ms(start))

        return BehaviorResult(
            behavior_id=behavior.id,
            behavior_name=behavior.title,
            status=BehaviorStatus.PASS if outcome.success else BehaviorStatus.FAIL,
            error=outcome.error,
            duration_ms=outcome.duration_ms,
        )

    async def _run_scenario(
        self,
        state: RunState,
        behavior: Behavior,
        options: RunOptions,
        scenario_name: Optional[str] = None,
    ) -> Optional[ScenarioResult]:
        """
        Run one scenario of a behavior with credentials applied.

        Returns None when the behavior has no scenarios.
        """
        scenario = behavior.get_scenario(scenario_name)
        if scenario is None:
            return None

        steps = process_steps_with_credentials(
            behavior, scenario.steps, state.credentials, self.config.credential_injection_window,
        )
        if state.credentials.has_credentials():
            options.credentials = state.credentials.get_credentials()

        with log_context(behavior_id=behavior.id):
            logger.info(
                f"Running [{scenario.name}]: {len(steps)} steps, session={options.mode.value}, "
                f"email={options.credentials.email if options.credentials else '(none)'}"
            )
            self._stats["scenarios_executed"] += 1
            outcome = await self.runner.run_scenario(Scenario(name=scenario.name, steps=steps), options)

            if is_account_creation_behavior(behavior.id):
                capture_credentials(steps, state.credentials)

        return outcome

    async def with_timeout(self, coro: Awaitable[T], behavior: Behavior) -> T:
        """
        Race a behavior execution against the behavior timeout.

        On timeout the execution is cancelled and BehaviorTimeoutError raised.
        """
        timeout_ms = self.config.behavior_timeout_ms
        try:
            return await asyncio.wait_for(coro, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise BehaviorTimeoutError(behavior.title, timeout_ms) from None

    async def _record(self, state: RunState, result: BehaviorResult) -> None:
        """Record a result once, cascade failures and notify listeners"""
        if not state.context.mark_result(result.behavior_id, result):
            return
        state.results.append(result)

        if result.status == BehaviorStatus.PASS:
            self._stats["behaviors_passed"] += 1
            logger.info(f"PASS {result.behavior_name} ({result.duration_ms}ms)")
            event = "behavior.passed"
        elif result.status == BehaviorStatus.FAIL:
            self._stats["behaviors_failed"] += 1
            logger.info(f"FAIL {result.behavior_name}: {result.error}")
            event = "behavior.failed"
        else:
            self._stats["behaviors_skipped"] += 1
            logger.info(f"SKIP {result.behavior_name} (dependency failed: {result.failed_dependency})")
            event = "behavior.skipped"

        if result.status != BehaviorStatus.PASS:
            cascade_skip(result.behavior_id, state.transitive_map, state.skip_set)

        await self._emit_event(event, state, result=result)

    # =========================================================================
    # Event System
    # =========================================================================

    def on(self, event: str, handler: Callable) -> None:
        """Register event handler"""
        if event not in self._event_handlers:
            self._event_handlers[event] = []
        self._event_handlers[event].append(handler)

    async def _emit_event(self, event: str, state: RunState, **kwargs) -> None:
        """Emit an event to handlers and the event sink"""
        handlers = self._event_handlers.get(event, [])
        for handler in handlers:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(event, state, **kwargs)
                else:
                    handler(event, state, **kwargs)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

        if self._event_sink is not None:
            metadata = {
                key: value.to_dict() if hasattr(value, "to_dict") else value
                for key, value in kwargs.items()
            }
            await self._event_sink.emit(
                event, EVENT_STATUS.get(event, "info"), state.run_id, metadata,
            )

    # =========================================================================
    # Statistics and Monitoring
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get orchestrator statistics"""
        return {
            **self._stats,
            "verifier": self.verifier.get_stats(),
            "session": self.session.get_stats(),
        }

    def get_result(self, behavior_id: str) -> Optional[BehaviorResult]:
        """Result of a behavior in the most recent run"""
        if self._state is None:
            return None
        return self._state.context.get_result(behavior_id)
