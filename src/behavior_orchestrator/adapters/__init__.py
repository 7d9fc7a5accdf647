"""
Collaborator Adapters
"""

from .base import ActionExecutor, ActionResult, CheckContext, Judge, JudgeVerdict, PageAdapter
from .mock import MockActionExecutor, MockJudge, MockPage, MockPageState
from .playwright import PlaywrightPage

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "CheckContext",
    "Judge",
    "JudgeVerdict",
    "PageAdapter",
    "MockActionExecutor",
    "MockJudge",
    "MockPage",
    "MockPageState",
    "PlaywrightPage",
]
