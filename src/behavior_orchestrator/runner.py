"""
Scenario Runner

Runs one scenario against the live page: prepares the session, executes
act steps through the action executor and settles check steps through the
dual-oracle verifier. Stops at the first failing step.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from .adapters.base import ActionExecutor, PageAdapter
from .credentials import Credentials
from .diagnostics import act_failure_message, collect_failure_context
from .errors import StepExecutionError
from .instructions import is_retryable_error, urls_match
from .main import (
    CheckType,
    OrchestratorConfig,
    Scenario,
    ScenarioResult,
    SessionMode,
    Step,
    StepResult,
)
from .session import SessionController
from .verification import DualOracleVerifier

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """How to prepare the session before a scenario"""
    mode: SessionMode = SessionMode.PRESERVE
    page_path: Optional[str] = None
    credentials: Optional[Credentials] = None
    reload_page: bool = False


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class ScenarioRunner:
    """Executes scenarios step by step"""

    def __init__(
        self,
        page: PageAdapter,
        executor: ActionExecutor,
        verifier: DualOracleVerifier,
        session: SessionController,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.page = page
        self.executor = executor
        self.verifier = verifier
        self.session = session
        self.config = config or OrchestratorConfig()

    async def run_scenario(self, scenario: Scenario, options: Optional[RunOptions] = None) -> ScenarioResult:
        """
        Run a scenario.

        Check steps compare the current location with the one recorded
        before the most recent act to decide whether the page transitioned.

        Raises:
            StepExecutionError: The action executor crashed
        """
        options = options or RunOptions()
        start = time.time()

        await self.session.apply(
            options.mode,
            page_path=options.page_path,
            credentials=options.credentials,
            reload_page=options.reload_page,
        )
        await self.verifier.capture_baselines(self.page)

        pre_act_url = self.page.url
        results: List[StepResult] = []

        for index, step in enumerate(scenario.steps):
            if step.is_act:
                pre_act_url = self.page.url
                await self.verifier.capture_baselines(self.page)
                result = await self._run_act(index, step)
            else:
                result = await self._run_check(step, pre_act_url)

            results.append(result)
            if not result.success:
                failed_at = await collect_failure_context(self.page, index, step, result.error or "")
                logger.info(f'Scenario "{scenario.name}" failed at step {index + 1}: {result.error}')
                return ScenarioResult(
                    scenario_name=scenario.name,
                    success=False,
                    steps=results,
                    duration_ms=_elapsed_ms(start),
                    failed_at=failed_at,
                )

        return ScenarioResult(
            scenario_name=scenario.name,
            success=True,
            steps=results,
            duration_ms=_elapsed_ms(start),
        )

    async def _run_act(self, index: int, step: Step) -> StepResult:
        start = time.time()
        max_attempts = max(1, self.config.act_max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                action = await self.executor.execute(step, self.page)
            except Exception as e:
                if is_retryable_error(str(e)) and attempt < max_attempts:
                    await self._backoff(attempt, max_attempts, str(e))
                    continue
                raise StepExecutionError(
                    f'Step {index + 1} "{step.instruction}" crashed: {e}'
                ) from e

            if action.success:
                return StepResult(step=step, success=True, duration_ms=_elapsed_ms(start))

            if action.error and is_retryable_error(action.error) and attempt < max_attempts:
                await self._backoff(attempt, max_attempts, action.error)
                continue

            error = await act_failure_message(
                self.page, step.instruction, attempt, max_attempts, detail=action.error,
            )
            return StepResult(step=step, success=False, duration_ms=_elapsed_ms(start), error=error)

        # Unreachable: the last attempt always returns or raises
        raise StepExecutionError(f'Step {index + 1} "{step.instruction}" exhausted its attempts')

    async def _backoff(self, attempt: int, max_attempts: int, error: str) -> None:
        logger.debug(f"Transient act error (attempt {attempt}/{max_attempts}): {error}")
        await asyncio.sleep(self.config.check_retry_delay_ms / 1000)

    async def _run_check(self, step: Step, pre_act_url: str) -> StepResult:
        start = time.time()
        transitioned = not urls_match(self.page.url, pre_act_url)
        outcome = await self.verifier.verify(step, self.page, page_transitioned=transitioned)

        error = None
        if not outcome.passed:
            if outcome.check_type == CheckType.DETERMINISTIC:
                error = (
                    f'Check failed: "{step.instruction}" '
                    f"(expected: {outcome.expected}, actual: {outcome.actual})"
                )
            else:
                error = outcome.actual

        return StepResult(
            step=step,
            success=outcome.passed,
            duration_ms=_elapsed_ms(start),
            error=error,
            actual=outcome.actual,
        )
