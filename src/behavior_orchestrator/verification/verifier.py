"""
Dual-Oracle Check Verifier

Reconciles two independent, individually unreliable judges into a single
verdict for each check step:

- a diff judge, comparing the page against a baseline taken before the
  last act
- a state judge, reading the current page on its own

Whichever judge suits the situation goes first; the other can rescue a
false negative. Only when both reject the condition on every attempt is
the check a confirmed failure.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from ..adapters.base import CheckContext, Judge, JudgeVerdict, PageAdapter
from ..diagnostics import check_failure_message
from ..errors import JudgeError
from ..instructions import classify_check
from ..main import CheckType, OrchestratorConfig, Step
from .validators import CheckOutcome, validate_expected_text, validate_property_check

logger = logging.getLogger(__name__)


class DualOracleVerifier:
    """
    Check verification protocol.

    1. Deterministic checks are read straight off the page.
    2. Quoted-text checks that pass on the page short-circuit the judges.
    3. If the page moved since the last act, the state judge is primary,
       because a before/after diff across a full transition is noise.
       Otherwise the diff judge is primary.
    4. Primary passes -> pass. Else rescue passes -> pass, attributed to
       the rescue. Else back off and retry until attempts run out.
    """

    def __init__(
        self,
        diff_judge: Judge,
        state_judge: Judge,
        max_attempts: int = 3,
        retry_delay_ms: int = 1000,
        timeout_ms: Optional[int] = 90000,
    ):
        self.diff_judge = diff_judge
        self.state_judge = state_judge
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_ms = retry_delay_ms
        self.timeout_ms = timeout_ms

        self._stats = {
            "checks": 0,
            "deterministic": 0,
            "text_fast_path": 0,
            "primary_passes": 0,
            "rescues": 0,
            "failures": 0,
            "judge_errors": 0,
        }

    @classmethod
    def from_config(
        cls,
        diff_judge: Judge,
        state_judge: Judge,
        config: OrchestratorConfig,
    ) -> "DualOracleVerifier":
        return cls(
            diff_judge,
            state_judge,
            max_attempts=config.check_max_attempts,
            retry_delay_ms=config.check_retry_delay_ms,
            timeout_ms=config.check_timeout_ms,
        )

    @property
    def judges(self) -> Tuple[Judge, Judge]:
        return self.diff_judge, self.state_judge

    async def capture_baselines(self, page: PageAdapter) -> None:
        """Let every judge snapshot the page; a failed snapshot is logged and skipped"""
        for judge in self.judges:
            try:
                await judge.capture_baseline(page)
            except Exception as e:
                error = JudgeError(judge.name, e)
                self._stats["judge_errors"] += 1
                logger.warning(f"Baseline skipped: {error}")

    async def verify(
        self,
        step: Step,
        page: PageAdapter,
        page_transitioned: bool = False,
    ) -> CheckOutcome:
        """Verify a check step against the current page"""
        self._stats["checks"] += 1
        instruction = step.instruction
        check_type = step.check_type or classify_check(instruction)

        if check_type == CheckType.DETERMINISTIC:
            self._stats["deterministic"] += 1
            outcome = await validate_property_check(instruction, page)
            if not outcome.passed:
                self._stats["failures"] += 1
            return outcome

        fast = await validate_expected_text(instruction, page)
        if fast is not None:
            self._stats["text_fast_path"] += 1
            return fast

        try:
            if self.timeout_ms:
                return await asyncio.wait_for(
                    self._run_oracles(step, page, page_transitioned),
                    timeout=self.timeout_ms / 1000,
                )
            return await self._run_oracles(step, page, page_transitioned)
        except asyncio.TimeoutError:
            self._stats["failures"] += 1
            logger.warning(f'Check timed out: "{instruction[:80]}"')
            return CheckOutcome(
                passed=False,
                check_type=CheckType.SEMANTIC,
                expected=instruction,
                actual=f'Check "{instruction}" timed out after {self.timeout_ms / 1000:g}s',
            )

    async def _run_oracles(
        self,
        step: Step,
        page: PageAdapter,
        page_transitioned: bool,
    ) -> CheckOutcome:
        instruction = step.instruction
        if page_transitioned:
            primary, rescue = self.state_judge, self.diff_judge
        else:
            primary, rescue = self.diff_judge, self.state_judge

        for attempt in range(1, self.max_attempts + 1):
            context = CheckContext(
                page=page,
                step=step,
                page_transitioned=page_transitioned,
                attempt=attempt,
            )

            verdict = await self._ask(primary, instruction, context)
            if verdict.passed:
                self._stats["primary_passes"] += 1
                return CheckOutcome(
                    passed=True,
                    check_type=CheckType.SEMANTIC,
                    expected=instruction,
                    actual=verdict.actual or f"Confirmed by {primary.name}",
                    confirmed_by=primary.name,
                    attempts=attempt,
                )

            verdict = await self._ask(rescue, instruction, context)
            if verdict.passed:
                self._stats["rescues"] += 1
                logger.info(f'{rescue.name} rescued a {primary.name} rejection: "{instruction[:80]}"')
                return CheckOutcome(
                    passed=True,
                    check_type=CheckType.SEMANTIC,
                    expected=instruction,
                    actual=f"Confirmed by {rescue.name} ({primary.name} false negative mitigated)",
                    confirmed_by=rescue.name,
                    attempts=attempt,
                )

            if attempt < self.max_attempts:
                logger.debug(
                    f"Both judges rejected (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {self.retry_delay_ms}ms"
                )
                await asyncio.sleep(self.retry_delay_ms / 1000)

        self._stats["failures"] += 1
        return CheckOutcome(
            passed=False,
            check_type=CheckType.SEMANTIC,
            expected=instruction,
            actual=await check_failure_message(page, instruction, self.max_attempts, self.max_attempts),
            attempts=self.max_attempts,
        )

    async def _ask(self, judge: Judge, instruction: str, context: CheckContext) -> JudgeVerdict:
        """Ask one judge; a judge that raises has rejected the condition"""
        try:
            return await judge.evaluate(instruction, context)
        except Exception as e:
            error = JudgeError(judge.name, e)
            self._stats["judge_errors"] += 1
            logger.warning(str(error))
            return JudgeVerdict(passed=False, actual=str(error))

    def get_stats(self) -> Dict[str, Any]:
        return dict(self._stats)
