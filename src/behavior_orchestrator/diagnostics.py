"""
Failure Diagnostics

Builds the human-readable context attached to failed steps: where the page
is, what it shows, and whether it looks like the session was lost.
"""

import logging
from typing import List, Optional

from .adapters.base import PageAdapter
from .instructions import describe_elements, looks_like_login_page, page_state_warning
from .main import FailureContext, Step

logger = logging.getLogger(__name__)

MAX_LISTED_ELEMENTS = 10


async def _page_snapshot(page: PageAdapter):
    """Current url, title and interactive elements; missing parts stay empty"""
    url, title, elements = page.url, "", []
    try:
        title = await page.title()
        elements = await page.interactive_elements(MAX_LISTED_ELEMENTS)
    except Exception as e:
        logger.debug(f"Could not inspect page for diagnostics: {e}")
    return url, title, elements


async def check_failure_message(
    page: PageAdapter,
    instruction: str,
    attempt: int,
    max_attempts: int,
) -> str:
    url, title, elements = await _page_snapshot(page)
    return (
        f'Check failed: "{instruction}" was not satisfied. '
        f'Current page: "{title}" ({url}).'
        f"{describe_elements(elements, MAX_LISTED_ELEMENTS)}"
        f" (Attempt {attempt}/{max_attempts})"
    )


async def act_failure_message(
    page: PageAdapter,
    instruction: str,
    attempt: int,
    max_attempts: int,
    detail: Optional[str] = None,
) -> str:
    url, title, elements = await _page_snapshot(page)
    parts = [f'Act failed: Could not execute "{instruction}".']
    if detail:
        parts.append(f"Reason: {detail}.")
    parts.append(f'Current page: "{title}" ({url}).')
    warning = page_state_warning(url, title)
    if warning:
        parts.append(warning)
    message = " ".join(parts)
    return f"{message}{describe_elements(elements, MAX_LISTED_ELEMENTS)} (Attempt {attempt}/{max_attempts})"


async def collect_failure_context(
    page: PageAdapter,
    step_index: int,
    step: Step,
    error: str,
) -> FailureContext:
    url, title, elements = await _page_snapshot(page)
    suggestions: List[str] = []
    if looks_like_login_page(url, title):
        suggestions.append("The session may have expired; check the sign-in preamble and credentials.")
    if step.is_check and "Unrecognized check pattern" in error:
        suggestions.append("Use patterns like 'URL contains X' or 'Page title is Y'.")
    return FailureContext(
        step_index=step_index,
        step=step,
        error=error,
        page_url=url,
        page_title=title,
        visible_elements=elements,
        suggestions=suggestions,
    )
