"""
BELEX Pipeline Actor Messages

Message types for the BELEX scraper actor system.
All messages are frozen dataclasses for immutability.
"""
from dataclasses import dataclass, replace, asdict
from typing import Tuple, Optional, Dict, Any
from enum import Enum, auto

from belex_scraper.domain.belex_entities import ExtractedDocument, ReconcileOutcome
from belex_scraper.infrastructure.adapters.belex_browser_adapter import LawLink


class PipelineState(Enum):
    """Pipeline execution states."""
    STARTING = auto()
    DISCOVERING = auto()
    SCRAPING = auto()
    COMPLETED = auto()
    ERROR = auto()


@dataclass(frozen=True)
class StartCrawl:
    """
    Message to run a full crawl.

    urls bypasses discovery when given.
    """
    index_url: Optional[str] = None
    max_documents: Optional[int] = None
    urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DiscoverLawLinks:
    """Message to collect law links from the systematic index."""
    index_url: Optional[str] = None


@dataclass(frozen=True)
class LawLinksDiscovered:
    """Reply carrying the discovered law links."""
    links: Tuple[LawLink, ...] = ()


@dataclass(frozen=True)
class ScrapeLawText:
    """Message to render and parse one law page."""
    url: str
    text: str = ""


@dataclass(frozen=True)
class LawTextScraped:
    """Reply when a law page has been parsed."""
    url: str
    document: ExtractedDocument


@dataclass(frozen=True)
class ReconcileDocument:
    """Message to persist one parsed document."""
    document: ExtractedDocument


@dataclass(frozen=True)
class DocumentReconciled:
    """Reply when every record of a document has been reconciled."""
    systematic_number: Optional[str]
    law_text_outcome: Optional[ReconcileOutcome] = None
    articles_inserted: int = 0
    articles_updated: int = 0
    articles_unchanged: int = 0

    @property
    def article_count(self) -> int:
        return self.articles_inserted + self.articles_updated + self.articles_unchanged

    @property
    def skipped(self) -> bool:
        return self.law_text_outcome is None


@dataclass(frozen=True)
class ActorError:
    """Error message for the BELEX pipeline."""
    message: str
    error_type: str
    recoverable: bool = True
    context: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class GetStatus:
    """Message to query pipeline state."""
    include_stats: bool = True


_LAW_TEXT_COUNTERS = {
    ReconcileOutcome.INSERTED: "law_texts_inserted",
    ReconcileOutcome.UPDATED: "law_texts_updated",
    ReconcileOutcome.NO_OP_EXISTING: "law_texts_unchanged",
}


@dataclass(frozen=True)
class CrawlStats:
    """Pipeline execution statistics."""
    documents_discovered: int = 0
    documents_scraped: int = 0
    documents_reconciled: int = 0
    documents_skipped: int = 0
    law_texts_inserted: int = 0
    law_texts_updated: int = 0
    law_texts_unchanged: int = 0
    articles_inserted: int = 0
    articles_updated: int = 0
    articles_unchanged: int = 0
    scrape_errors: int = 0
    reconcile_errors: int = 0

    @property
    def errors(self) -> int:
        return self.scrape_errors + self.reconcile_errors

    @property
    def success_rate(self) -> float:
        """Share of discovered documents that were fully reconciled."""
        if self.documents_discovered == 0:
            return 0.0
        return self.documents_reconciled / self.documents_discovered

    def with_increment(self, counter: str, amount: int = 1) -> "CrawlStats":
        """Return new instance with incremented field."""
        current_value = getattr(self, counter)
        return replace(self, **{counter: current_value + amount})

    def with_document(self, result: DocumentReconciled) -> "CrawlStats":
        """Return new instance with the counts of one reconciled document added."""
        if result.skipped:
            return self.with_increment("documents_skipped")

        law_text_counter = _LAW_TEXT_COUNTERS[result.law_text_outcome]
        return replace(
            self,
            documents_reconciled=self.documents_reconciled + 1,
            articles_inserted=self.articles_inserted + result.articles_inserted,
            articles_updated=self.articles_updated + result.articles_updated,
            articles_unchanged=self.articles_unchanged + result.articles_unchanged,
            **{law_text_counter: getattr(self, law_text_counter) + 1},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["errors"] = self.errors
        data["success_rate"] = self.success_rate
        return data
