"""
Thin async wrapper around the Playwright page showing the live dashboard.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urljoin

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from comprehensive_report.capture import scripts
from comprehensive_report.config.settings import Settings
from comprehensive_report.errors import ElementNotFound


class DashboardSession:
    """All page interaction goes through this class so capture logic stays testable."""

    def __init__(self, page: Page, settings: Settings):
        self.page = page
        self.settings = settings
        self.dashboard = settings.dashboard
        self.logger = logging.getLogger(__name__)

    async def goto(self, url: str) -> None:
        """Navigate to the dashboard and wait for the landing grid."""
        timeout = int(self.dashboard.get("navigation_timeout", 60000))
        self.logger.info(f"Opening dashboard: {url}")
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        try:
            await self.page.wait_for_load_state("networkidle", timeout=15000)
        except PlaywrightError:
            self.logger.debug("Network did not go idle, continuing")
        await self.page.wait_for_selector(self.dashboard["landing_selector"], state="attached", timeout=timeout)

    async def click_text(self, scope: str, text: str) -> None:
        """
        Click the element in ``scope`` whose visible text is exactly ``text``.

        Raises:
            ElementNotFound: when no such element exists
        """
        locator = self.page.locator(scope).get_by_text(text, exact=True)
        if await locator.count() == 0:
            raise ElementNotFound(f"control labelled '{text}'", scope)
        await locator.first.click()

    async def run_command(self, name: str, args: Optional[List[Any]] = None) -> bool:
        """Invoke a command the dashboard exposes for export; False when absent."""
        return bool(await self.page.evaluate(scripts.RUN_COMMAND, {"name": name, "args": args or []}))

    async def dispatch_pointer_sequence(self, scope: str, text: str) -> bool:
        """Fire the full pointer/mouse event sequence on a labelled control."""
        return bool(await self.page.evaluate(scripts.POINTER_SEQUENCE, {"scope": scope, "text": text}))

    async def count_table_rows(self, selector: str) -> int:
        return int(await self.page.evaluate(scripts.COUNT_TABLE_ROWS, selector))

    async def collect_value_texts(self, root: str, container: Optional[str], selectors: List[str]) -> List[str]:
        """Texts of the value elements inside ``container``, searched only within the view ``root``."""
        return list(await self.page.evaluate(
            scripts.COLLECT_VALUE_TEXTS,
            {"root": root, "container": container or "", "selectors": list(selectors)},
        ))

    async def count_rendered(self, selector: str) -> int:
        return int(await self.page.evaluate(scripts.COUNT_RENDERED_ELEMENTS, selector))

    async def element_exists(self, selector: str) -> bool:
        return bool(await self.page.evaluate(scripts.ELEMENT_EXISTS, selector))

    async def clone_view(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """Swap canvases for images, clone and post-process the view root."""
        return await self.page.evaluate(scripts.CLONE_VIEW, options)

    async def stylesheet_snapshot(self) -> List[Dict[str, Any]]:
        return list(await self.page.evaluate(scripts.STYLESHEET_SNAPSHOT))

    async def dismiss_overlay(self) -> None:
        """
        Close the open detail overlay with its back control, or Escape.

        Raises:
            ElementNotFound: when the overlay is still open afterwards
        """
        overlay = self.dashboard["overlay_selector"]
        if not await self.element_exists(overlay):
            return

        close_button = self.page.locator(self.dashboard["close_selector"])
        if await close_button.count() > 0:
            await close_button.first.click()
        else:
            await self.page.keyboard.press("Escape")

        if await self.element_exists(overlay):
            await self.page.keyboard.press("Escape")
        if await self.element_exists(overlay):
            raise ElementNotFound("overlay dismiss control", self.dashboard["close_selector"])

    async def active_tab(self) -> Optional[str]:
        """Label of the currently active tab, if any."""
        return await self.page.evaluate(scripts.ACTIVE_TAB, self.dashboard["tab_selector"])

    async def activate_tab(self, label: str) -> bool:
        """Click the tab whose text is ``label``; False when it no longer exists."""
        pattern = re.compile(rf"^\s*{re.escape(label)}\s*$")
        locator = self.page.locator(self.dashboard["tab_selector"]).filter(has_text=pattern)
        if await locator.count() == 0:
            return False
        await locator.first.click()
        return True

    async def read_toggles(self, labels: Dict[str, str]) -> Dict[str, bool]:
        return dict(await self.page.evaluate(scripts.READ_TOGGLES, labels))

    async def read_state(self) -> Optional[Dict[str, Any]]:
        """Evaluate the dashboard's state accessor expression."""
        expression = self.dashboard["state_expression"]
        return await self.page.evaluate(f"() => ({expression})")

    async def fetch_text(self, path: str) -> Optional[str]:
        """
        Fetch a resource relative to the dashboard URL.

        Returns:
            The body text for a 2xx response, None otherwise
        """
        url = urljoin(self.page.url, path)
        try:
            response = await self.page.request.get(url)
        except PlaywrightError as e:
            self.logger.debug(f"Fetch failed for {url}: {e}")
            return None
        if not response.ok:
            self.logger.debug(f"Fetch for {url} returned HTTP {response.status}")
            return None
        return await response.text()

    async def fetch_bytes(self, url: str) -> Optional[bytes]:
        """Fetch an absolute URL through the browser's request context."""
        try:
            response = await self.page.request.get(url, timeout=30000)
        except PlaywrightError as e:
            self.logger.warning(f"Download failed for {url}: {e}")
            return None
        if not response.ok:
            self.logger.warning(f"Download for {url} returned HTTP {response.status}")
            return None
        return await response.body()


@asynccontextmanager
async def open_dashboard(settings: Settings, url: Optional[str] = None) -> AsyncIterator[DashboardSession]:
    """Launch Chromium, open the dashboard and yield a session; always closes the browser."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        try:
            context = await browser.new_context(viewport=settings.viewport)
            page = await context.new_page()
            session = DashboardSession(page, settings)
            await session.goto(url or settings.dashboard_url)
            yield session
        finally:
            await browser.close()
