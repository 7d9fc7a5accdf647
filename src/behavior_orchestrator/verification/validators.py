"""
Deterministic Check Validators

Checks that can be settled by reading the page directly, without a judge:
page-property comparisons (URL, title) and quoted-text presence.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..adapters.base import PageAdapter
from ..instructions import extract_expected_text, parse_property_check
from ..main import CheckType

logger = logging.getLogger(__name__)


@dataclass
class CheckOutcome:
    """Result of evaluating one check step"""
    passed: bool
    check_type: CheckType
    expected: str
    actual: str = ""
    suggestion: Optional[str] = None
    confirmed_by: Optional[str] = None
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "check_type": self.check_type.value,
            "expected": self.expected,
            "actual": self.actual,
            "suggestion": self.suggestion,
            "confirmed_by": self.confirmed_by,
            "attempts": self.attempts,
        }


async def validate_property_check(instruction: str, page: PageAdapter) -> CheckOutcome:
    """Evaluate a deterministic check such as 'URL contains /tasks'"""
    check = parse_property_check(instruction)
    if check is None:
        return CheckOutcome(
            passed=False,
            check_type=CheckType.DETERMINISTIC,
            expected=instruction,
            actual="Unrecognized check pattern",
            suggestion="Use patterns like 'URL contains X' or 'Page title is Y'",
        )

    actual = page.url if check.subject == "url" else await page.title()
    return CheckOutcome(
        passed=check.evaluate(actual),
        check_type=CheckType.DETERMINISTIC,
        expected=check.expected,
        actual=actual,
        confirmed_by="page",
    )


async def validate_expected_text(instruction: str, page: PageAdapter) -> Optional[CheckOutcome]:
    """
    Fast path for quoted-text checks.

    Returns a passing outcome when the text is present (or absent, for
    negated checks). Returns None otherwise: a miss here is not a confirmed
    failure, the judges still get their say.
    """
    expectation = extract_expected_text(instruction)
    if expectation is None:
        return None

    try:
        text = await page.visible_text()
    except Exception as e:
        logger.debug(f'Could not read page text for "{expectation.text}", falling through to judges: {e}')
        return None

    found = expectation.text in text
    if found != expectation.should_exist:
        logger.debug(f'Text check for "{expectation.text}" inconclusive, falling through to judges')
        return None

    if found:
        actual = f'Found "{expectation.text}" on page'
    else:
        actual = f'Text "{expectation.text}" not on page (expected absent)'
    return CheckOutcome(
        passed=True,
        check_type=CheckType.SEMANTIC,
        expected=instruction,
        actual=actual,
        confirmed_by="text",
    )
