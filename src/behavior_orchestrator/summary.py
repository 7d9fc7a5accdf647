"""
Run Summary

Aggregates behavior results into counts, a reward in [0, 1] and a one-line
human summary.
"""

from typing import Dict, List

from .main import BehaviorResult, BehaviorStatus, VerificationSummary


def calculate_reward(results: List[BehaviorResult]) -> float:
    """Fraction of behaviors that passed; 0 for an empty run"""
    if not results:
        return 0.0
    passed = sum(1 for r in results if r.status == BehaviorStatus.PASS)
    return passed / len(results)


def aggregate_results(results: List[BehaviorResult]) -> Dict[str, float]:
    counts = {status: 0 for status in BehaviorStatus}
    for result in results:
        counts[result.status] += 1
    return {
        "passed": counts[BehaviorStatus.PASS],
        "failed": counts[BehaviorStatus.FAIL],
        "dependency_failed": counts[BehaviorStatus.DEPENDENCY_FAILED],
        "total": len(results),
        "reward": calculate_reward(results),
    }


def generate_summary(results: List[BehaviorResult]) -> str:
    """
    Human summary, e.g.
    "2 behaviors passed, 1 failed (Add Task), 1 failed due to dependencies"
    """
    passed = [r for r in results if r.status == BehaviorStatus.PASS]
    failed = [r for r in results if r.status == BehaviorStatus.FAIL]
    dependency_failed = [r for r in results if r.status == BehaviorStatus.DEPENDENCY_FAILED]

    noun = "behavior" if len(passed) == 1 else "behaviors"
    parts = [f"{len(passed)} {noun} passed"]
    if failed:
        names = ", ".join(r.behavior_name for r in failed)
        parts.append(f"{len(failed)} failed ({names})")
    if dependency_failed:
        parts.append(f"{len(dependency_failed)} failed due to dependencies")

    return ", ".join(parts)


def create_verification_summary(results: List[BehaviorResult], duration_ms: int = 0) -> VerificationSummary:
    counts = aggregate_results(results)
    return VerificationSummary(
        passed=counts["passed"],
        failed=counts["failed"],
        dependency_failed=counts["dependency_failed"],
        total=counts["total"],
        reward=counts["reward"],
        summary=generate_summary(results),
        behaviors=list(results),
        duration_ms=duration_ms,
    )
