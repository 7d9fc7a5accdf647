"""
Mock Adapters for Testing

In-memory page, action executor and judge for exercising the orchestrator
without a browser or model-backed judges. All of them record their calls.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Union
from urllib.parse import urlparse

from ..main import Step
from .base import ActionExecutor, ActionResult, CheckContext, Judge, JudgeVerdict, PageAdapter

logger = logging.getLogger(__name__)


@dataclass
class MockPageState:
    """Content served for one path"""
    title: str = ""
    text: str = ""
    elements: List[str] = field(default_factory=list)


class MockPage(PageAdapter):
    """
    Mock page.

    Serves MockPageState per path, follows configured redirects and only
    answers goto() for reachable origins when a reachable set is given.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, MockPageState]] = None,
        redirects: Optional[Dict[str, str]] = None,
        reachable_origins: Optional[Iterable[str]] = None,
    ):
        self._url = "about:blank"
        self.pages: Dict[str, MockPageState] = pages or {}
        self.redirects: Dict[str, str] = redirects or {}
        self.reachable_origins: Optional[Set[str]] = (
            set(reachable_origins) if reachable_origins is not None else None
        )
        self.storage: Dict[str, str] = {}
        self.form_values: Dict[str, str] = {}
        self.calls: List[str] = []

    @property
    def url(self) -> str:
        return self._url

    def set_location(self, url: str) -> None:
        """Move the page as if the application navigated on its own"""
        parsed = urlparse(url)
        target = self.redirects.get(parsed.path)
        if target:
            url = f"{parsed.scheme}://{parsed.netloc}{target}"
        self._url = url

    def set_text(self, text: str, path: Optional[str] = None) -> None:
        path = path or self._path()
        self.pages.setdefault(path, MockPageState()).text = text

    def _path(self) -> str:
        return urlparse(self._url).path or "/"

    def _state(self) -> MockPageState:
        return self.pages.get(self._path(), MockPageState())

    async def title(self) -> str:
        return self._state().title

    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> bool:
        self.calls.append(f"goto {url}")
        if url == "about:blank":
            self._url = url
            return True
        parsed = urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}"
        if self.reachable_origins is not None and origin not in self.reachable_origins:
            return False
        self.set_location(url)
        return True

    async def soft_navigate(self, url: str) -> None:
        self.calls.append(f"soft_navigate {url}")
        self.set_location(url)

    async def clear_storage(self) -> None:
        self.calls.append("clear_storage")
        self.storage.clear()

    async def reload(self) -> None:
        self.calls.append("reload")

    async def wait_for_idle(self) -> None:
        pass

    async def visible_text(self) -> str:
        return self._state().text

    async def interactive_elements(self, limit: int = 10) -> List[str]:
        return self._state().elements[:limit]

    async def clear_form_fields(self) -> None:
        self.calls.append("clear_form_fields")
        self.form_values.clear()


class MockActionExecutor(ActionExecutor):
    """
    Mock action executor.

    Every instruction succeeds unless it contains one of the configured
    failure or crash markers. Navigation markers move the page.
    """

    def __init__(
        self,
        failures: Optional[Dict[str, str]] = None,
        crashes: Optional[Iterable[str]] = None,
        navigations: Optional[Dict[str, str]] = None,
        delay_ms: int = 0,
        on_execute: Optional[Callable[[Step, PageAdapter], None]] = None,
    ):
        self.failures: Dict[str, str] = failures or {}
        self.crashes: List[str] = list(crashes or [])
        self.navigations: Dict[str, str] = navigations or {}
        self.delay_ms = delay_ms
        self.on_execute = on_execute
        self.executed: List[str] = []

    async def execute(self, step: Step, page: PageAdapter) -> ActionResult:
        self.executed.append(step.instruction)

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        for marker in self.crashes:
            if marker in step.instruction:
                raise RuntimeError(f"Executor crashed on: {step.instruction}")

        for marker, error in self.failures.items():
            if marker in step.instruction:
                return ActionResult(success=False, error=error, page_url=page.url)

        for marker, url in self.navigations.items():
            if marker in step.instruction and isinstance(page, MockPage):
                page.set_location(url)

        if self.on_execute:
            self.on_execute(step, page)

        return ActionResult(success=True, page_url=page.url)

    def executed_matching(self, text: str) -> List[str]:
        return [instruction for instruction in self.executed if text in instruction]


class MockJudge(Judge):
    """
    Mock judge.

    Verdicts come from a callable, from a queue consumed one per call, or
    fall back to the default. With raises set, every call raises it.
    """

    def __init__(
        self,
        name: str = "mock",
        default: bool = True,
        verdicts: Optional[Union[List[bool], Callable[[str], bool]]] = None,
        raises: Optional[Exception] = None,
    ):
        self.name = name
        self.default = default
        self._verdicts = verdicts
        self.raises = raises
        self.calls: List[str] = []
        self.baselines = 0

    async def evaluate(self, condition: str, context: CheckContext) -> JudgeVerdict:
        self.calls.append(condition)
        if self.raises is not None:
            raise self.raises

        if callable(self._verdicts):
            passed = bool(self._verdicts(condition))
        elif self._verdicts:
            passed = self._verdicts.pop(0)
        else:
            passed = self.default

        return JudgeVerdict(
            passed=passed,
            actual=f"{self.name}: {'satisfied' if passed else 'not satisfied'}",
        )

    async def capture_baseline(self, page: PageAdapter) -> None:
        self.baselines += 1
