"""
Browser adapter for the BELEX Angular application.

Uses Playwright for headless browser automation. BELEX renders both the
systematic index and every law page client-side, so pages are only parsed
after the app has finished rendering.
"""
from dataclasses import dataclass
from typing import List, Optional
from contextlib import asynccontextmanager
import logging
import time

from .belex_errors import (
    BrowserNotAvailableError,
    BrowserTimeoutError,
    ExtractionMiss,
    JavaScriptRenderError,
)

logger = logging.getLogger(__name__)


BELEX_INDEX_URL = "https://www.belex.sites.be.ch/app/de/systematic/texts_of_law"
EXPAND_LINK_SELECTOR = (
    "#page-content > ng-component > ng-component > div > clex-tree > div > p > a:nth-child(1)"
)
TREE_NODE_SELECTOR = "clex-tree-node"
LAW_LINK_SELECTOR = "clex-tree-node a"
LAW_PAGE_WAIT_SELECTOR = ".systematic_number"

_COLLECT_LINKS_JS = (
    "anchors => anchors.map(anchor => ({"
    "text: anchor.textContent.trim(), href: anchor.href"
    "}))"
)


@dataclass(frozen=True)
class BelexBrowserConfig:
    """Browser configuration for Playwright."""
    headless: bool = True
    timeout_ms: int = 30000
    field_timeout_ms: int = 3000
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    slow_mo: int = 0  # Milliseconds to slow down operations (for debugging)


@dataclass(frozen=True)
class RenderedPage:
    """Result of rendering a page."""
    url: str
    html: str
    title: str
    status_code: int
    load_time_ms: int


@dataclass(frozen=True)
class LawLink:
    """Entry of the systematic index."""
    text: str
    href: str


class BelexBrowserAdapter:
    """
    Playwright-based browser adapter for BELEX.

    Handles:
    - Browser lifecycle management
    - Expanding the systematic index and collecting law links
    - Rendering law pages for the document parser
    """

    def __init__(self, config: Optional[BelexBrowserConfig] = None):
        self._config = config or BelexBrowserConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self._started = False

    @property
    def config(self) -> BelexBrowserConfig:
        return self._config

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Initialize Playwright and launch browser."""
        # Import here to handle missing playwright gracefully
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise BrowserNotAvailableError(
                "Playwright not installed. Run: pip install playwright && playwright install chromium"
            )

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._config.headless,
            slow_mo=self._config.slow_mo,
        )
        self._context = await self._browser.new_context(
            viewport={
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
            user_agent=self._config.user_agent,
        )
        self._started = True
        logger.info(f"Browser started (headless={self._config.headless})")

    async def stop(self) -> None:
        """Close browser and cleanup resources."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self._started = False

    def _ensure_started(self) -> None:
        if not self._started:
            raise BrowserNotAvailableError("Browser not started. Call start() first.")

    async def render_page(
        self,
        url: str,
        wait_selector: Optional[str] = LAW_PAGE_WAIT_SELECTOR,
        wait_for_network_idle: bool = True,
    ) -> RenderedPage:
        """
        Navigate to URL and return rendered HTML after JS execution.

        A wait_selector that never appears is not fatal: the page is returned
        as rendered and the parser degrades the missing fields to None.

        Args:
            url: Page URL to render
            wait_selector: CSS selector signalling the content is rendered
            wait_for_network_idle: Wait for network to be idle

        Returns:
            RenderedPage with rendered HTML content

        Raises:
            BrowserNotAvailableError: If start() was not called
            BrowserTimeoutError: If navigation timed out
            JavaScriptRenderError: If navigation failed
        """
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        self._ensure_started()

        page = await self._context.new_page()
        start_time = time.time()

        try:
            response = await page.goto(
                url,
                timeout=self._config.timeout_ms,
                wait_until="domcontentloaded",
            )

            status_code = response.status if response else 0

            # Wait for content to load
            if wait_for_network_idle:
                try:
                    await page.wait_for_load_state(
                        "networkidle",
                        timeout=self._config.timeout_ms
                    )
                except PlaywrightTimeoutError:
                    # Network idle timeout is not critical
                    logger.debug(f"Network not idle after {self._config.timeout_ms}ms: {url}")

            if wait_selector:
                try:
                    await page.wait_for_selector(
                        wait_selector,
                        state="visible",
                        timeout=self._config.field_timeout_ms,
                    )
                except PlaywrightTimeoutError:
                    logger.info(str(ExtractionMiss(wait_selector)))

            html = await page.content()
            title = await page.title()

            load_time_ms = int((time.time() - start_time) * 1000)

            return RenderedPage(
                url=url,
                html=html,
                title=title,
                status_code=status_code,
                load_time_ms=load_time_ms,
            )

        except PlaywrightTimeoutError:
            raise BrowserTimeoutError(
                f"Timeout loading {url}",
                timeout_seconds=self._config.timeout_ms // 1000
            )
        except PlaywrightError as e:
            raise JavaScriptRenderError(f"Navigation to {url} failed: {e}", url=url)
        finally:
            await page.close()

    async def discover_law_links(self, index_url: str = BELEX_INDEX_URL) -> List[LawLink]:
        """
        Expand the systematic index and collect the link of every law text.

        Args:
            index_url: URL of the systematic index

        Returns:
            LawLinks in index order, duplicates removed

        Raises:
            BrowserNotAvailableError: If start() was not called
            JavaScriptRenderError: If the index tree could not be expanded
        """
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        self._ensure_started()

        page = await self._context.new_page()
        try:
            await page.goto(
                index_url,
                timeout=self._config.timeout_ms,
                wait_until="networkidle",
            )

            await page.wait_for_selector(
                EXPAND_LINK_SELECTOR,
                state="visible",
                timeout=self._config.timeout_ms,
            )
            await page.locator(EXPAND_LINK_SELECTOR).scroll_into_view_if_needed()
            await page.click(EXPAND_LINK_SELECTOR)
            logger.info("Clicked the expand link.")

            await page.wait_for_selector(
                TREE_NODE_SELECTOR,
                state="visible",
                timeout=self._config.timeout_ms,
            )

            raw_links = await page.eval_on_selector_all(LAW_LINK_SELECTOR, _COLLECT_LINKS_JS)

        except PlaywrightTimeoutError as e:
            raise JavaScriptRenderError(
                f"Systematic index did not render: {e}",
                url=index_url,
            )
        except PlaywrightError as e:
            raise JavaScriptRenderError(f"Navigation to {index_url} failed: {e}", url=index_url)
        finally:
            await page.close()

        links = []
        seen = set()
        for raw in raw_links or []:
            href = (raw.get("href") or "").strip()
            if not href or href in seen:
                continue
            seen.add(href)
            links.append(LawLink(text=(raw.get("text") or "").strip(), href=href))

        if not links:
            logger.warning("No links found within <clex-tree-node>.")
        else:
            logger.info(f"Found {len(links)} links within <clex-tree-node>.")
        return links


@asynccontextmanager
async def belex_browser_session(config: Optional[BelexBrowserConfig] = None):
    """
    Context manager for browser sessions.

    Usage:
        async with belex_browser_session() as browser:
            links = await browser.discover_law_links()
    """
    adapter = BelexBrowserAdapter(config)
    try:
        await adapter.start()
        yield adapter
    finally:
        await adapter.stop()
