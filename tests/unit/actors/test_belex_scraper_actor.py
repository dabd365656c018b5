"""
Tests for BELEX Scraper Actor
"""
import pytest
from unittest.mock import AsyncMock, Mock


LAW_PAGE_HTML = """
<html><body>
  <div class="systematic_number">152.01</div>
  <h1 class="title">Gesetz über die Steuerung</h1>
  <div class="type-article"><span class="article_number">Art. 1</span></div>
  <div class="collapseable">
    <div class="paragraph"><span class="number">1</span>Text eins.</div>
  </div>
</body></html>
"""


def _browser(html=LAW_PAGE_HTML, status_code=200):
    from belex_scraper.infrastructure.adapters.belex_browser_adapter import RenderedPage

    browser = Mock()
    browser.render_page = AsyncMock(return_value=RenderedPage(
        url="https://example.test/152.01",
        html=html,
        title="BELEX",
        status_code=status_code,
        load_time_ms=10,
    ))
    browser.discover_law_links = AsyncMock(return_value=[])
    return browser


class TestBelexScraperActorInit:
    """Tests for BelexScraperActor initialization."""

    def test_inherits_from_base_actor(self):
        from belex_scraper.infrastructure.actors.base import BelexBaseActor
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor
        assert issubclass(BelexScraperActor, BelexBaseActor)

    def test_default_actor_id(self):
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor
        assert BelexScraperActor().actor_id == "belex-scraper"


class TestHandleScrapeLawText:
    """Tests for handle_scrape_law_text."""

    @pytest.mark.asyncio
    async def test_renders_and_parses_page(self):
        """The rendered HTML is parsed into a document."""
        from belex_scraper.infrastructure.actors.belex_messages import LawTextScraped, ScrapeLawText
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor

        browser = _browser()
        actor = BelexScraperActor(browser_adapter=browser)

        reply = await actor.handle_scrape_law_text(ScrapeLawText(url="https://example.test/152.01"))

        assert isinstance(reply, LawTextScraped)
        assert reply.document.systematic_number == "152.01"
        assert reply.document.header.source_url == "https://example.test/152.01"
        assert reply.document.articles[0].paragraphs[0].text == "Text eins."
        assert actor.scraped_count == 1
        browser.render_page.assert_awaited_once_with("https://example.test/152.01")

    @pytest.mark.asyncio
    async def test_http_error_raises_render_error(self):
        from belex_scraper.infrastructure.actors.belex_messages import ScrapeLawText
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor
        from belex_scraper.infrastructure.adapters.belex_errors import JavaScriptRenderError

        actor = BelexScraperActor(browser_adapter=_browser(status_code=404))

        with pytest.raises(JavaScriptRenderError):
            await actor.handle_scrape_law_text(ScrapeLawText(url="https://example.test/x"))
        assert actor.scraped_count == 0

    @pytest.mark.asyncio
    async def test_driver_failure_reaches_asker_as_actor_error(self):
        """Navigation failures become ActorError replies."""
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, ScrapeLawText
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor
        from belex_scraper.infrastructure.adapters.belex_errors import BrowserTimeoutError

        browser = _browser()
        browser.render_page.side_effect = BrowserTimeoutError("Timeout loading x")
        actor = BelexScraperActor(browser_adapter=browser)

        reply = await actor.receive(ScrapeLawText(url="x"), escalate=False)

        assert isinstance(reply, ActorError)
        assert reply.error_type == "BrowserTimeoutError"
        assert reply.recoverable is True

    @pytest.mark.asyncio
    async def test_missing_browser_is_not_recoverable(self):
        from belex_scraper.infrastructure.actors.belex_messages import ScrapeLawText
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor

        reply = await BelexScraperActor().receive(ScrapeLawText(url="x"), escalate=False)
        assert reply.recoverable is False


class TestHandleDiscoverLawLinks:
    """Tests for handle_discover_law_links."""

    @pytest.mark.asyncio
    async def test_returns_links(self):
        from belex_scraper.infrastructure.actors.belex_messages import DiscoverLawLinks, LawLinksDiscovered
        from belex_scraper.infrastructure.actors.belex_scraper_actor import BelexScraperActor
        from belex_scraper.infrastructure.adapters.belex_browser_adapter import BELEX_INDEX_URL, LawLink

        browser = _browser()
        browser.discover_law_links.return_value = [LawLink(text="101.1", href="https://example.test/101.1")]
        actor = BelexScraperActor(browser_adapter=browser)

        reply = await actor.handle_discover_law_links(DiscoverLawLinks())

        assert isinstance(reply, LawLinksDiscovered)
        assert reply.links[0].href == "https://example.test/101.1"
        browser.discover_law_links.assert_awaited_once_with(BELEX_INDEX_URL)
