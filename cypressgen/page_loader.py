"""Playwright-backed page loading for HTML snapshots."""
import logging
from contextlib import contextmanager

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .dom_filter import filter_dom
from .errors import PageLoadError

logger = logging.getLogger(__name__)


class PlaywrightPageLoader:
    """
    Loads a page in headless Chromium and returns either the filtered DOM tree
    or the full rendered HTML. Browser resources are released on every path.
    """

    def __init__(self, headless: bool = True, timeout_ms: int = 30000):
        self.headless = headless
        self.timeout_ms = timeout_ms

    @contextmanager
    def _page(self):
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=self.headless)
            try:
                page = browser.new_page()
                page.set_default_timeout(self.timeout_ms)
                yield page
            finally:
                browser.close()

    def _render(self, url: str, wait_until: str) -> str:
        try:
            with self._page() as page:
                page.goto(url, wait_until=wait_until)
                page.wait_for_selector("body", state="attached")
                return page.content()
        except PlaywrightError as e:
            logger.error("❌ Page load failed for %s: %s", url, e)
            raise PageLoadError(url, str(e)) from e

    def load_filtered_dom(self, url: str):
        logger.info("🌍 Loading filtered DOM from %s", url)
        return filter_dom(self._render(url, wait_until="load"))

    def load_full_html(self, url: str) -> str:
        logger.info("🌍 Loading full HTML from %s", url)
        return self._render(url, wait_until="networkidle")
