"""
Tests for BELEX Coordinator Actor
"""
import asyncio
from io import StringIO

import pytest
from unittest.mock import AsyncMock, Mock


def _document(systematic_number="101.1"):
    from belex_scraper.domain.belex_entities import ExtractedDocument, LawTextHeader
    return ExtractedDocument(header=LawTextHeader(systematic_number=systematic_number))


def _scraper(links=(), scrape_replies=None):
    """Scraper actor mock answering discovery and scrape requests."""
    from belex_scraper.infrastructure.actors.belex_messages import (
        DiscoverLawLinks,
        LawLinksDiscovered,
        LawTextScraped,
    )

    replies = dict(scrape_replies or {})

    async def ask(message, timeout=None):
        if isinstance(message, DiscoverLawLinks):
            return LawLinksDiscovered(links=tuple(links))
        if message.url in replies:
            return replies[message.url]
        return LawTextScraped(url=message.url, document=_document(message.url.rsplit("/", 1)[-1]))

    scraper = Mock()
    scraper.ask = AsyncMock(side_effect=ask)
    scraper.stop = AsyncMock()
    return scraper


def _persistence():
    from belex_scraper.domain.belex_entities import ReconcileOutcome
    from belex_scraper.infrastructure.actors.belex_messages import DocumentReconciled

    async def ask(message, timeout=None):
        return DocumentReconciled(
            systematic_number=message.document.systematic_number,
            law_text_outcome=ReconcileOutcome.INSERTED,
            articles_inserted=2,
        )

    persistence = Mock()
    persistence.ask = AsyncMock(side_effect=ask)
    persistence.stop = AsyncMock()
    return persistence


def _coordinator(scraper=None, persistence=None, **kwargs):
    from belex_scraper.infrastructure.actors.belex_coordinator_actor import BelexCoordinatorActor
    from belex_scraper.infrastructure.logging.belex_logger import BelexLogger
    return BelexCoordinatorActor(
        scraper_actor=scraper,
        persistence_actor=persistence,
        progress_logger=BelexLogger("test-coordinator", stream=StringIO()),
        **kwargs,
    )


class TestBelexCoordinatorActorInit:
    """Tests for BelexCoordinatorActor initialization."""

    def test_inherits_from_base_actor(self):
        from belex_scraper.infrastructure.actors.base import BelexBaseActor
        from belex_scraper.infrastructure.actors.belex_coordinator_actor import BelexCoordinatorActor
        assert issubclass(BelexCoordinatorActor, BelexBaseActor)

    def test_has_child_actors_and_stats(self):
        from belex_scraper.infrastructure.actors.belex_messages import CrawlStats
        scraper, persistence = Mock(), Mock()
        actor = _coordinator(scraper, persistence)
        assert actor.scraper_actor is scraper
        assert actor.persistence_actor is persistence
        assert actor.stats == CrawlStats()


class TestHandleStartCrawl:
    """Tests for the crawl loop."""

    @pytest.mark.asyncio
    async def test_discovers_and_processes_every_link(self):
        from belex_scraper.infrastructure.actors.belex_messages import PipelineState, StartCrawl
        from belex_scraper.infrastructure.adapters.belex_browser_adapter import LawLink

        links = [LawLink(text="a", href="https://example.test/101.1"),
                 LawLink(text="b", href="https://example.test/152.01")]
        persistence = _persistence()
        actor = _coordinator(_scraper(links), persistence)

        stats = await actor.handle_start_crawl(StartCrawl())

        assert stats.documents_discovered == 2
        assert stats.documents_scraped == 2
        assert stats.documents_reconciled == 2
        assert stats.law_texts_inserted == 2
        assert stats.articles_inserted == 4
        assert actor.state == PipelineState.COMPLETED
        reconciled = [call.args[0].document.systematic_number for call in persistence.ask.call_args_list]
        assert reconciled == ["101.1", "152.01"]

    @pytest.mark.asyncio
    async def test_explicit_urls_skip_discovery(self):
        from belex_scraper.infrastructure.actors.belex_messages import DiscoverLawLinks, StartCrawl

        scraper = _scraper()
        actor = _coordinator(scraper, _persistence())

        stats = await actor.handle_start_crawl(StartCrawl(urls=("https://example.test/101.1",)))

        assert stats.documents_discovered == 1
        assert not any(isinstance(c.args[0], DiscoverLawLinks) for c in scraper.ask.call_args_list)

    @pytest.mark.asyncio
    async def test_max_documents_limits_the_crawl(self):
        from belex_scraper.infrastructure.actors.belex_messages import StartCrawl

        urls = tuple(f"https://example.test/{n}" for n in range(5))
        actor = _coordinator(_scraper(), _persistence())

        stats = await actor.handle_start_crawl(StartCrawl(urls=urls, max_documents=2))

        assert stats.documents_discovered == 2
        assert stats.documents_reconciled == 2

    @pytest.mark.asyncio
    async def test_recoverable_scrape_error_moves_on(self):
        """A failed page is counted and the next document is processed."""
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, PipelineState, StartCrawl

        failing = "https://example.test/bad"
        scraper = _scraper(scrape_replies={
            failing: ActorError(message="Timeout", error_type="BrowserTimeoutError"),
        })
        actor = _coordinator(scraper, _persistence())

        stats = await actor.handle_start_crawl(StartCrawl(urls=(failing, "https://example.test/101.1")))

        assert stats.scrape_errors == 1
        assert stats.documents_reconciled == 1
        assert actor.state == PipelineState.COMPLETED

    @pytest.mark.asyncio
    async def test_reconcile_error_is_counted(self):
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, StartCrawl

        persistence = Mock()
        persistence.ask = AsyncMock(return_value=ActorError(
            message="Reconciliation failed for 101.1", error_type="ReconciliationError",
        ))
        actor = _coordinator(_scraper(), persistence)

        stats = await actor.handle_start_crawl(StartCrawl(urls=("https://example.test/101.1",)))

        assert stats.reconcile_errors == 1
        assert stats.documents_reconciled == 0

    @pytest.mark.asyncio
    async def test_non_recoverable_error_stops_crawl(self):
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, PipelineState, StartCrawl

        scraper = Mock()
        scraper.ask = AsyncMock(return_value=ActorError(
            message="No browser", error_type="BrowserNotAvailableError", recoverable=False,
        ))
        persistence = _persistence()
        actor = _coordinator(scraper, persistence)

        stats = await actor.handle_start_crawl(StartCrawl(urls=("https://a.test/1", "https://a.test/2")))

        assert stats.scrape_errors == 1
        assert scraper.ask.await_count == 1
        persistence.ask.assert_not_called()
        assert actor.state == PipelineState.ERROR

    @pytest.mark.asyncio
    async def test_failed_discovery_ends_in_error(self):
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, PipelineState, StartCrawl

        scraper = Mock()
        scraper.ask = AsyncMock(return_value=ActorError(message="tree", error_type="JavaScriptRenderError"))
        actor = _coordinator(scraper, _persistence())

        stats = await actor.handle_start_crawl(StartCrawl())

        assert stats.documents_discovered == 0
        assert stats.scrape_errors == 1
        assert actor.state == PipelineState.ERROR

    @pytest.mark.asyncio
    async def test_step_timeout_counts_as_error(self):
        from belex_scraper.infrastructure.actors.belex_messages import StartCrawl

        scraper = Mock()
        scraper.ask = AsyncMock(side_effect=asyncio.TimeoutError())
        actor = _coordinator(scraper, _persistence(), step_timeout=0.1)

        stats = await actor.handle_start_crawl(StartCrawl(urls=("https://example.test/101.1",)))

        assert stats.scrape_errors == 1


class TestStatusAndLifecycle:
    """Tests for status queries and stop."""

    @pytest.mark.asyncio
    async def test_get_status_includes_stats(self):
        from belex_scraper.infrastructure.actors.belex_messages import GetStatus, PipelineState
        status = await _coordinator().handle_get_status(GetStatus())
        assert status["state"] == PipelineState.STARTING
        assert status["actor_id"] == "belex-coordinator"
        assert status["stats"]["documents_discovered"] == 0

    @pytest.mark.asyncio
    async def test_escalated_non_recoverable_error_sets_error_state(self):
        from belex_scraper.infrastructure.actors.belex_messages import ActorError, PipelineState
        actor = _coordinator()
        await actor.handle_actor_error(ActorError(message="x", error_type="X", recoverable=False))
        assert actor.state == PipelineState.ERROR

    @pytest.mark.asyncio
    async def test_stop_stops_children(self):
        scraper, persistence = _scraper(), _persistence()
        actor = _coordinator(scraper, persistence)
        await actor.start()
        await actor.stop()
        scraper.stop.assert_awaited_once()
        persistence.stop.assert_awaited_once()
