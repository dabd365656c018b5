"""
BELEX Scraping Actor System

Actor-based architecture for the crawl pipeline.
"""
from .base import BelexBaseActor
from .belex_messages import (
    # Commands
    StartCrawl,
    DiscoverLawLinks,
    ScrapeLawText,
    ReconcileDocument,
    GetStatus,
    # Events
    LawLinksDiscovered,
    LawTextScraped,
    DocumentReconciled,
    ActorError,
    # State
    PipelineState,
    CrawlStats,
)
from .belex_scraper_actor import BelexScraperActor
from .belex_persistence_actor import BelexPersistenceActor
from .belex_coordinator_actor import BelexCoordinatorActor
