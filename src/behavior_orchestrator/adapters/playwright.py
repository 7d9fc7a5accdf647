"""
Playwright Page Adapter

PageAdapter over a Playwright async page. Requires the optional
``browser`` extra.
"""

import logging
from typing import Any, List, Optional

from .base import PageAdapter

logger = logging.getLogger(__name__)

CLEAR_STORAGE_SCRIPT = """() => {
  try { localStorage.clear(); } catch (e) {}
  try { sessionStorage.clear(); } catch (e) {}
  document.cookie.split(';').forEach(c => {
    const name = c.split('=')[0].trim();
    if (name) {
      document.cookie = `${name}=;expires=Thu, 01 Jan 1970 00:00:00 GMT;path=/`;
    }
  });
}"""

SOFT_NAVIGATE_SCRIPT = "(url) => { window.location.href = url; }"

INTERACTIVE_ELEMENTS_SCRIPT = """(limit) => {
  const els = Array.from(document.querySelectorAll('button, a, input, select, [role="button"]'));
  return els.slice(0, limit).map(el => {
    const tag = el.tagName.toLowerCase();
    const text = (el.textContent || '').trim().slice(0, 30);
    const type = el.getAttribute('type') || '';
    let desc = tag;
    if (type) desc += `[type=${type}]`;
    if (text) desc += `: "${text}"`;
    return desc;
  });
}"""

CLEAR_FORM_FIELDS_SCRIPT = """() => {
  const inputSetter = Object.getOwnPropertyDescriptor(window.HTMLInputElement.prototype, 'value')?.set;
  const textareaSetter = Object.getOwnPropertyDescriptor(window.HTMLTextAreaElement.prototype, 'value')?.set;
  document.querySelectorAll('input:not([type="hidden"]), textarea').forEach(el => {
    const setter = el.tagName === 'TEXTAREA' ? textareaSetter : inputSetter;
    if (setter) { setter.call(el, ''); } else { el.value = ''; }
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
  });
}"""


class PlaywrightPage(PageAdapter):
    """
    Adapter for a Playwright page.

    Wrap an existing ``playwright.async_api.Page`` or use launch() to start
    a headless Chromium owned by the adapter.
    """

    def __init__(self, page: Any, navigation_timeout_ms: int = 30000):
        self._page = page
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright = None
        self._browser = None

    @classmethod
    async def launch(cls, headless: bool = True, **kwargs) -> "PlaywrightPage":
        """Start a browser and return an adapter over a fresh page"""
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError("playwright package is required for PlaywrightPage")

        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(headless=headless)
        page = await browser.new_page()

        adapter = cls(page, **kwargs)
        adapter._playwright = playwright
        adapter._browser = browser
        logger.info(f"Playwright browser launched (headless={headless})")
        return adapter

    @property
    def url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> bool:
        response = await self._page.goto(url, timeout=timeout_ms or self.navigation_timeout_ms)
        if response is None:
            # about:blank and same-document navigations have no response
            return True
        return response.ok

    async def soft_navigate(self, url: str) -> None:
        await self._page.evaluate(SOFT_NAVIGATE_SCRIPT, url)

    async def clear_storage(self) -> None:
        await self._page.evaluate(CLEAR_STORAGE_SCRIPT)

    async def reload(self) -> None:
        await self._page.reload()

    async def wait_for_idle(self) -> None:
        await self._page.wait_for_load_state("networkidle")

    async def visible_text(self) -> str:
        return await self._page.inner_text("body")

    async def interactive_elements(self, limit: int = 10) -> List[str]:
        return await self._page.evaluate(INTERACTIVE_ELEMENTS_SCRIPT, limit)

    async def clear_form_fields(self) -> None:
        await self._page.evaluate(CLEAR_FORM_FIELDS_SCRIPT)

    async def close(self) -> None:
        """Close the page and anything launch() started"""
        await self._page.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        logger.info("Playwright page closed")
