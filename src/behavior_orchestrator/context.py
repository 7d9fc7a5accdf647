"""
Verification Context

Run-scoped record of behavior results. Each behavior is recorded once;
dependents consult the record to decide whether they can run.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .main import Behavior, BehaviorResult, BehaviorStatus

logger = logging.getLogger(__name__)


@dataclass
class SkipDecision:
    """Whether a behavior must be skipped, and why"""
    skip: bool
    reason: Optional[str] = None
    failed_dependency: Optional[str] = None


class VerificationContext:
    """Shared result store for a single verification run"""

    def __init__(self):
        self._results: Dict[str, BehaviorResult] = {}

    def mark_result(self, behavior_id: str, result: BehaviorResult) -> bool:
        """
        Record the result for a behavior.

        Results are terminal: a second write is ignored and logged.
        Returns True when the result was recorded.
        """
        existing = self._results.get(behavior_id)
        if existing is not None:
            logger.warning(
                f"Result for {behavior_id} already recorded as {existing.status.value}; "
                f"ignoring {result.status.value}"
            )
            return False
        self._results[behavior_id] = result
        return True

    def get_result(self, behavior_id: str) -> Optional[BehaviorResult]:
        return self._results.get(behavior_id)

    def has_result(self, behavior_id: str) -> bool:
        return behavior_id in self._results

    def has_passed(self, behavior_id: str) -> bool:
        result = self._results.get(behavior_id)
        return result is not None and result.passed

    def should_skip(self, dependency_ids: Iterable[str]) -> SkipDecision:
        """
        Decide whether a behavior with these dependencies must be skipped.

        A dependency without a result has not been disproven and does not
        cause a skip. Any recorded non-pass result does.
        """
        for dep_id in dependency_ids:
            result = self._results.get(dep_id)
            if result is not None and not result.passed:
                return SkipDecision(
                    skip=True,
                    reason=f'Dependency "{result.behavior_name}" failed',
                    failed_dependency=result.behavior_name,
                )
        return SkipDecision(skip=False)

    def find_failed_dependency(self, behavior: Behavior) -> str:
        """Title of the first dependency with a non-pass result"""
        for dep_id in behavior.dependency_ids:
            result = self._results.get(dep_id)
            if result is not None and not result.passed:
                return result.behavior_name
        return "unknown"

    def all_results(self) -> List[BehaviorResult]:
        return list(self._results.values())

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in BehaviorStatus}
        for result in self._results.values():
            counts[result.status.value] += 1
        return counts

    def clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, behavior_id: str) -> bool:
        return behavior_id in self._results
