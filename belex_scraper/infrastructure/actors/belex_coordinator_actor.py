"""
BELEX Coordinator Actor

Supervisor actor that coordinates the BELEX crawl.

Flow per document, strictly sequential:
scrape -> reconcile law text -> reconcile each article -> next document

The coordinator asks for each step and waits for the reply before sending
the next request, so at most one document is in flight.
"""
import asyncio
import logging
from typing import List, Optional

from belex_scraper.infrastructure.actors.base import BelexBaseActor
from belex_scraper.infrastructure.actors.belex_messages import (
    PipelineState,
    CrawlStats,
    StartCrawl,
    DiscoverLawLinks,
    LawLinksDiscovered,
    ScrapeLawText,
    LawTextScraped,
    ReconcileDocument,
    DocumentReconciled,
    GetStatus,
    ActorError,
)
from belex_scraper.infrastructure.logging.belex_logger import BelexLogger, LogContext


logger = logging.getLogger(__name__)


class BelexCoordinatorActor(BelexBaseActor):
    """
    Coordinator actor for the BELEX crawl.

    Supervises the scraper and persistence actors.

    Features:
    - Pipeline state management
    - Statistics tracking
    - Per-document failure isolation: a failed page or reconciliation is
      counted and the crawl moves on
    - Stops early on non-recoverable errors (browser unavailable)
    """

    def __init__(
        self,
        scraper_actor: Optional[BelexBaseActor] = None,
        persistence_actor: Optional[BelexBaseActor] = None,
        step_timeout: Optional[float] = None,
        actor_id: Optional[str] = None,
        supervisor: Optional[BelexBaseActor] = None,
        progress_logger: Optional[BelexLogger] = None,
    ):
        """
        Args:
            scraper_actor: Actor rendering and parsing pages
            persistence_actor: Actor reconciling parsed documents
            step_timeout: Seconds to wait for one scrape or reconcile reply
                (None waits indefinitely)
        """
        super().__init__(actor_id=actor_id or "belex-coordinator", supervisor=supervisor)
        self._scraper_actor = scraper_actor
        self._persistence_actor = persistence_actor
        self._step_timeout = step_timeout
        self._stats = CrawlStats()
        self._progress = progress_logger or BelexLogger("coordinator")

    @property
    def scraper_actor(self) -> Optional[BelexBaseActor]:
        return self._scraper_actor

    @property
    def persistence_actor(self) -> Optional[BelexBaseActor]:
        return self._persistence_actor

    @property
    def stats(self) -> CrawlStats:
        return self._stats

    # Pipeline control handlers

    async def handle_start_crawl(self, msg: StartCrawl) -> CrawlStats:
        """
        Run a full crawl.

        Args:
            msg: Crawl request; urls skips discovery

        Returns:
            Statistics of the crawl
        """
        self._stats = CrawlStats()
        context = LogContext(correlation_id=self._actor_id)

        with self._progress.timed_operation("crawl", context):
            urls = list(msg.urls) or await self._discover(msg.index_url)
            if urls is None:
                return self._stats

            if msg.max_documents is not None:
                urls = urls[:msg.max_documents]
            self._stats = self._stats.with_increment("documents_discovered", len(urls))

            self._set_state(PipelineState.SCRAPING)
            for index, url in enumerate(urls, start=1):
                self._progress.info(f"Document {index}/{len(urls)}: {url}", context)
                if not await self._process_document(url):
                    self._progress.error("Non-recoverable error, stopping crawl", context)
                    self._set_state(PipelineState.ERROR)
                    return self._stats

        self._set_state(PipelineState.COMPLETED)
        self._progress.info(f"Crawl finished: {self._stats.to_dict()}", context)
        return self._stats

    async def _discover(self, index_url: Optional[str]) -> Optional[List[str]]:
        """Law URLs of the systematic index, or None if discovery failed."""
        self._set_state(PipelineState.DISCOVERING)
        if not self._scraper_actor:
            logger.warning("No scraper actor configured")
            self._set_state(PipelineState.ERROR)
            return None

        reply = await self._ask(self._scraper_actor, DiscoverLawLinks(index_url=index_url))
        if not isinstance(reply, LawLinksDiscovered):
            self._record_error(reply, "scrape_errors")
            self._set_state(PipelineState.ERROR)
            return None

        return [link.href for link in reply.links]

    async def _process_document(self, url: str) -> bool:
        """
        Scrape and reconcile one document.

        Returns:
            False if the crawl cannot continue, True otherwise
        """
        if not self._scraper_actor or not self._persistence_actor:
            logger.warning("Scraper or persistence actor not configured")
            return False

        reply = await self._ask(self._scraper_actor, ScrapeLawText(url=url))
        if not isinstance(reply, LawTextScraped):
            return self._record_error(reply, "scrape_errors", url=url)
        self._stats = self._stats.with_increment("documents_scraped")

        reply = await self._ask(self._persistence_actor, ReconcileDocument(document=reply.document))
        if not isinstance(reply, DocumentReconciled):
            return self._record_error(reply, "reconcile_errors", url=url)
        self._stats = self._stats.with_document(reply)
        return True

    async def _ask(self, actor: BelexBaseActor, message) -> object:
        try:
            return await actor.ask(message, timeout=self._step_timeout)
        except asyncio.TimeoutError:
            return ActorError(
                message=f"No reply to {type(message).__name__} within {self._step_timeout}s",
                error_type="TimeoutError",
            )

    def _record_error(self, reply: object, counter: str, url: str = "") -> bool:
        """Count a failed step. Returns whether the crawl may continue."""
        self._stats = self._stats.with_increment(counter)
        if isinstance(reply, ActorError):
            logger.error(f"Pipeline error for {url or 'index'}: {reply.error_type} - {reply.message}")
            return reply.recoverable
        logger.error(f"Unexpected reply for {url or 'index'}: {reply!r}")
        return True

    # Error handling

    async def handle_actor_error(self, error: ActorError) -> None:
        """
        Handle error escalated by a child actor.

        Args:
            error: Error message
        """
        logger.error(f"Pipeline error: {error.error_type} - {error.message}")
        if not error.recoverable:
            self._set_state(PipelineState.ERROR)

    # State query handler

    async def handle_get_status(self, msg: GetStatus) -> dict:
        """
        Handle state query.

        Args:
            msg: State query message

        Returns:
            State information dict
        """
        result = {
            "state": self._state,
            "actor_id": self._actor_id,
        }

        if msg.include_stats:
            result["stats"] = self._stats.to_dict()

        return result

    # Lifecycle

    async def on_stop(self) -> None:
        """Stop all child actors."""
        for actor in [self._scraper_actor, self._persistence_actor]:
            if actor and hasattr(actor, 'stop'):
                try:
                    await actor.stop()
                except Exception as e:
                    logger.error(f"Error stopping child actor: {e}")
