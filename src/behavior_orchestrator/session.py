"""
Session Controller

Prepares the live page before a scenario runs: a full reset to a clean
anonymous session, in-app navigation that keeps the session, or nothing.
Also recovers from losing authentication during navigation.
"""

import logging
from typing import List, Optional
from urllib.parse import urlparse

from .adapters.base import ActionExecutor, PageAdapter
from .credentials import Credentials
from .instructions import (
    is_child_path,
    is_parameterized_path,
    is_sign_in_redirect,
    path_matches,
    url_path,
    urls_match,
)
from .main import SessionMode, Step

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_MS = 3000


class SessionController:
    """
    Owns session state transitions for the single page of a run.

    Modes:
    - HARD_RESET: blank page, app root, clear storage and cookies, reload
    - SOFT_NAVIGATE: in-app navigation to a page path, keeping the session
    - PRESERVE: leave the page as the previous behavior left it
    """

    def __init__(
        self,
        page: PageAdapter,
        executor: ActionExecutor,
        base_url: str,
        probe_ports: Optional[List[int]] = None,
    ):
        self.page = page
        self.executor = executor
        self._base_url = base_url.rstrip("/")
        self.probe_ports = list(probe_ports or [])
        self._base_url_resolved = not self.probe_ports

        self._stats = {
            "hard_resets": 0,
            "soft_navigations": 0,
            "navigations_skipped": 0,
            "auth_recoveries": 0,
        }

    @property
    def base_url(self) -> str:
        return self._base_url

    def target_url(self, page_path: str) -> str:
        return f"{self._base_url}{page_path}"

    async def apply(
        self,
        mode: SessionMode,
        page_path: Optional[str] = None,
        credentials: Optional[Credentials] = None,
        reload_page: bool = False,
    ) -> None:
        """Bring the page into the state the next scenario expects"""
        if mode == SessionMode.HARD_RESET:
            await self.hard_reset()
        elif mode == SessionMode.SOFT_NAVIGATE and page_path:
            await self.soft_navigate(page_path, credentials)

        if reload_page:
            await self.page.reload()
            await self.page.wait_for_idle()
            await self.page.clear_form_fields()
            logger.debug("Page reloaded and form fields cleared")

    # =========================================================================
    # Hard Reset
    # =========================================================================

    async def resolve_base_url(self) -> str:
        """
        Find where the application is actually listening.

        Tries the configured base URL first, then the same host on each
        probe port. Runs once per controller.
        """
        if self._base_url_resolved:
            return self._base_url
        self._base_url_resolved = True

        if await self._responds(self._base_url):
            logger.info(f"Application responding on {self._base_url}")
            return self._base_url

        parsed = urlparse(self._base_url)
        if parsed.port is None:
            logger.warning(f"{self._base_url} did not respond; no port to probe around")
            return self._base_url

        for port in self.probe_ports:
            if port == parsed.port:
                continue
            candidate = f"{parsed.scheme}://{parsed.hostname}:{port}"
            if await self._responds(candidate):
                logger.warning(
                    f"Application found on port {port} (expected {parsed.port}); using {candidate}"
                )
                self._base_url = candidate
                return candidate

        logger.warning(f"No application found on any probed port; using {self._base_url}")
        return self._base_url

    async def _responds(self, url: str) -> bool:
        try:
            return await self.page.goto(url, timeout_ms=PROBE_TIMEOUT_MS)
        except Exception as e:
            logger.debug(f"Probe of {url} failed: {e}")
            return False

    async def hard_reset(self) -> None:
        """Return to a clean anonymous session at the application root"""
        await self.resolve_base_url()

        await self.page.goto("about:blank")
        await self.page.goto(self._base_url)
        await self.page.clear_storage()
        await self.page.reload()
        await self.page.wait_for_idle()

        self._stats["hard_resets"] += 1
        logger.info(f"Hard reset complete. Page URL: {self.page.url}")

    # =========================================================================
    # Soft Navigation
    # =========================================================================

    async def soft_navigate(self, page_path: str, credentials: Optional[Credentials] = None) -> bool:
        """
        Navigate to page_path without reloading the application.

        Skipped when already there, already below it, or when the path has
        parameters (the dependency chain is trusted to have got there).
        Returns True when navigation happened.
        """
        target_url = self.target_url(page_path)
        current_url = self.page.url
        current_path = url_path(current_url)

        if urls_match(current_url, target_url):
            logger.debug(f"Already on {page_path}, skipping navigation")
            self._stats["navigations_skipped"] += 1
            return False

        if is_parameterized_path(page_path):
            if path_matches(current_path, page_path):
                logger.debug(f"On {current_path}, which matches {page_path}")
            else:
                logger.info(f"Parameterized route {page_path}, skipping navigation")
            self._stats["navigations_skipped"] += 1
            return False

        if is_child_path(current_path, page_path):
            logger.debug(f"Already in child path {current_path} of {page_path}, skipping navigation")
            self._stats["navigations_skipped"] += 1
            return False

        logger.info(f"Soft-navigating to {target_url}")
        await self.page.soft_navigate(target_url)
        await self.page.wait_for_idle()
        self._stats["soft_navigations"] += 1

        after_url = self.page.url
        if credentials is not None and credentials.complete:
            title = await self.page.title()
            if is_sign_in_redirect(after_url, target_url, title):
                logger.warning(f"Session lost: redirected to {after_url}. Attempting recovery")
                await self.recover_auth(credentials, target_url)
        return True

    async def recover_auth(self, credentials: Credentials, target_url: str) -> bool:
        """
        Sign back in with the captured credentials and return to target_url.

        Recovery failures are logged; the scenario then fails on its own steps.
        """
        steps = [
            Step.act(f'Type "{credentials.email}" into the email field'),
            Step.act(f'Type "{credentials.password}" into the password field'),
            Step.act("Click the sign in button"),
        ]
        try:
            for step in steps:
                result = await self.executor.execute(step, self.page)
                if not result.success:
                    logger.warning(f"Auth recovery step failed: {result.error}")
                    return False
            await self.page.wait_for_idle()

            if not urls_match(self.page.url, target_url):
                await self.page.soft_navigate(target_url)
                await self.page.wait_for_idle()
        except Exception as e:
            logger.warning(f"Auth recovery failed: {e}")
            return False

        self._stats["auth_recoveries"] += 1
        logger.info(f"Auth recovery succeeded. Page URL: {self.page.url}")
        return True

    def get_stats(self):
        return dict(self._stats)
