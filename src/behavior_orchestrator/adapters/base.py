"""
Collaborator Interfaces

The orchestrator drives three external collaborators: the page under test,
the action executor that performs one instruction, and the judges that
decide whether a condition holds. Concrete implementations plug in here.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..main import Step

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Result of executing one act instruction"""
    success: bool
    duration_ms: int = 0
    error: Optional[str] = None
    page_url: Optional[str] = None
    available_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "page_url": self.page_url,
            "available_actions": self.available_actions,
        }


@dataclass
class JudgeVerdict:
    """A judge's answer for one condition"""
    passed: bool
    actual: str = ""
    reasoning: Optional[str] = None


@dataclass
class CheckContext:
    """What a judge gets to see when evaluating a condition"""
    page: "PageAdapter"
    step: Step
    page_transitioned: bool = False
    attempt: int = 1


class PageAdapter(ABC):
    """
    The live application page.

    A single page is owned by the orchestrator for the whole run.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Current location"""
        pass

    @abstractmethod
    async def title(self) -> str:
        pass

    @abstractmethod
    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> bool:
        """
        Full navigation to url.

        Returns True when the target responded successfully.
        """
        pass

    @abstractmethod
    async def soft_navigate(self, url: str) -> None:
        """In-app navigation that keeps in-memory session state"""
        pass

    @abstractmethod
    async def clear_storage(self) -> None:
        """Clear client-side storage and non-protected cookies"""
        pass

    @abstractmethod
    async def reload(self) -> None:
        pass

    @abstractmethod
    async def wait_for_idle(self) -> None:
        """Wait until network activity settles"""
        pass

    @abstractmethod
    async def visible_text(self) -> str:
        pass

    @abstractmethod
    async def interactive_elements(self, limit: int = 10) -> List[str]:
        """Short descriptions of visible buttons, links and inputs"""
        pass

    @abstractmethod
    async def clear_form_fields(self) -> None:
        pass

    async def close(self) -> None:
        """Release the page"""
        logger.debug("Page closed")


class ActionExecutor(ABC):
    """Performs a single act instruction against the page"""

    @abstractmethod
    async def execute(self, step: Step, page: PageAdapter) -> ActionResult:
        """
        Execute an act step.

        Failures to perform the action are reported in the result. Raising
        is reserved for crashes of the executor itself.
        """
        pass


class Judge(ABC):
    """
    Decides whether a natural-language condition holds on the page.

    Judges are individually unreliable; the dual-oracle verifier combines
    two of them. A judge may raise, which counts as a failed verdict.
    """

    name: str = "judge"

    @abstractmethod
    async def evaluate(self, condition: str, context: CheckContext) -> JudgeVerdict:
        pass

    async def capture_baseline(self, page: PageAdapter) -> None:
        """Snapshot the page before an act, for judges that compare states"""
        pass
