"""
Tests for the Playwright page adapter
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from behavior_orchestrator.adapters.playwright import (
    CLEAR_FORM_FIELDS_SCRIPT,
    CLEAR_STORAGE_SCRIPT,
    SOFT_NAVIGATE_SCRIPT,
    PlaywrightPage,
)


@pytest.fixture
def raw_page():
    page = AsyncMock()
    page.url = "http://localhost:3000/tasks"
    return page


class TestPlaywrightPage:
    """Tests for PlaywrightPage over a mocked Playwright page"""

    def test_url(self, raw_page):
        """url reads through to the page"""
        assert PlaywrightPage(raw_page).url == "http://localhost:3000/tasks"

    @pytest.mark.asyncio
    async def test_goto_ok(self, raw_page):
        """goto reports the response status"""
        raw_page.goto.return_value = MagicMock(ok=True)
        adapter = PlaywrightPage(raw_page, navigation_timeout_ms=10000)

        assert await adapter.goto("http://localhost:3000") is True
        raw_page.goto.assert_awaited_once_with("http://localhost:3000", timeout=10000)

    @pytest.mark.asyncio
    async def test_goto_error_status(self, raw_page):
        """An error response means the target did not respond"""
        raw_page.goto.return_value = MagicMock(ok=False)
        assert await PlaywrightPage(raw_page).goto("http://localhost:3000", timeout_ms=3000) is False
        raw_page.goto.assert_awaited_once_with("http://localhost:3000", timeout=3000)

    @pytest.mark.asyncio
    async def test_goto_without_response(self, raw_page):
        """Navigations without a response count as success"""
        raw_page.goto.return_value = None
        assert await PlaywrightPage(raw_page).goto("about:blank") is True

    @pytest.mark.asyncio
    async def test_scripts(self, raw_page):
        """Page-side operations run their scripts"""
        adapter = PlaywrightPage(raw_page)

        await adapter.soft_navigate("http://localhost:3000/items")
        await adapter.clear_storage()
        await adapter.clear_form_fields()

        assert [c.args for c in raw_page.evaluate.await_args_list] == [
            (SOFT_NAVIGATE_SCRIPT, "http://localhost:3000/items"),
            (CLEAR_STORAGE_SCRIPT,),
            (CLEAR_FORM_FIELDS_SCRIPT,),
        ]

    @pytest.mark.asyncio
    async def test_reads(self, raw_page):
        """Title, text and elements come from the page"""
        raw_page.title.return_value = "Tasks"
        raw_page.inner_text.return_value = "Buy milk"
        raw_page.evaluate.return_value = ['button: "Add"']
        adapter = PlaywrightPage(raw_page)

        assert await adapter.title() == "Tasks"
        assert await adapter.visible_text() == "Buy milk"
        assert await adapter.interactive_elements(5) == ['button: "Add"']
        raw_page.inner_text.assert_awaited_once_with("body")

    @pytest.mark.asyncio
    async def test_wait_for_idle(self, raw_page):
        """Idle means network idle"""
        await PlaywrightPage(raw_page).wait_for_idle()
        raw_page.wait_for_load_state.assert_awaited_once_with("networkidle")

    @pytest.mark.asyncio
    async def test_close_stops_launched_browser(self, raw_page):
        """close() shuts down what launch() started"""
        adapter = PlaywrightPage(raw_page)
        adapter._browser = AsyncMock()
        adapter._playwright = AsyncMock()

        await adapter.close()

        raw_page.close.assert_awaited_once()
        adapter._browser.close.assert_awaited_once()
        adapter._playwright.stop.assert_awaited_once()
