"""
BELEX Scraper Actor

Actor owning the browser: discovers law links on the systematic index and
renders and parses individual law pages.
"""
import logging
from typing import Optional, Any

from belex_scraper.infrastructure.actors.base import BelexBaseActor
from belex_scraper.infrastructure.actors.belex_messages import (
    PipelineState,
    DiscoverLawLinks,
    LawLinksDiscovered,
    ScrapeLawText,
    LawTextScraped,
)
from belex_scraper.infrastructure.adapters.belex_browser_adapter import BELEX_INDEX_URL
from belex_scraper.infrastructure.adapters.belex_document_parser import parse_law_text_document
from belex_scraper.infrastructure.adapters.belex_errors import (
    BrowserNotAvailableError,
    JavaScriptRenderError,
)


logger = logging.getLogger(__name__)


class BelexScraperActor(BelexBaseActor):
    """
    Actor for scraping BELEX law pages.

    Driver failures propagate out of the handlers and reach the asker as
    ActorError replies.
    """

    def __init__(
        self,
        browser_adapter: Optional[Any] = None,
        actor_id: Optional[str] = None,
        supervisor: Optional[BelexBaseActor] = None,
    ):
        super().__init__(actor_id=actor_id or "belex-scraper", supervisor=supervisor)
        self._browser_adapter = browser_adapter
        self._scraped_count = 0

    @property
    def browser_adapter(self) -> Optional[Any]:
        return self._browser_adapter

    @property
    def scraped_count(self) -> int:
        return self._scraped_count

    def _require_browser(self) -> Any:
        if not self._browser_adapter:
            raise BrowserNotAvailableError("No browser adapter configured")
        return self._browser_adapter

    async def handle_discover_law_links(self, msg: DiscoverLawLinks) -> LawLinksDiscovered:
        """
        Collect the law links of the systematic index.

        Args:
            msg: Discovery request

        Returns:
            LawLinksDiscovered with links in index order
        """
        browser = self._require_browser()
        self._set_state(PipelineState.DISCOVERING)
        links = await browser.discover_law_links(msg.index_url or BELEX_INDEX_URL)
        return LawLinksDiscovered(links=tuple(links))

    async def handle_scrape_law_text(self, msg: ScrapeLawText) -> LawTextScraped:
        """
        Render and parse one law page.

        Args:
            msg: Scrape request with the page URL

        Returns:
            LawTextScraped with the parsed document

        Raises:
            DriverFailure: If the page could not be loaded
        """
        browser = self._require_browser()
        self._set_state(PipelineState.SCRAPING)
        logger.info(f"Navigating to link: {msg.url}")

        rendered = await browser.render_page(msg.url)

        if rendered.status_code >= 400:
            raise JavaScriptRenderError(
                f"HTTP {rendered.status_code} for {msg.url}",
                url=msg.url,
            )

        document = parse_law_text_document(rendered.html, source_url=msg.url)
        self._scraped_count += 1
        logger.debug(
            f"Scraped {document.systematic_number}: "
            f"{len(document.articles)} articles, {document.paragraph_count} paragraphs"
        )
        return LawTextScraped(url=msg.url, document=document)
