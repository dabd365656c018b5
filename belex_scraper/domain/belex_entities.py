"""
BELEX Domain Entities

Entities for the Bern legal-code (BELEX) scraper.
All entities are immutable (frozen dataclasses) following DDD patterns.

ExtractedDocument is the aggregate root produced by the extractor; the
reconciliation results describe what happened to each persisted record.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Dict, Any


OUTLINE_LEVELS: Tuple[str, ...] = (
    "book_name",
    "part_name",
    "title_name",
    "sub_title_name",
    "chapter_name",
    "sub_chapter_name",
    "section_name",
    "sub_section_name",
)


@dataclass(frozen=True)
class LawTextHeader:
    """
    Flat header fields of one legal instrument.

    Any field the page did not render stays None.
    """
    systematic_number: Optional[str] = None
    title: Optional[str] = None
    abbreviation: Optional[str] = None
    enactment: Optional[str] = None
    ingress_author: Optional[str] = None
    ingress_foundation: Optional[str] = None
    ingress_action: Optional[str] = None
    source_url: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Convert to a lawtext_bern record."""
        return {
            "systematic_number": self.systematic_number,
            "title": self.title,
            "abbreviation": self.abbreviation,
            "enactment": self.enactment,
            "ingress_author": self.ingress_author,
            "ingress_foundation": self.ingress_foundation,
            "ingress_action": self.ingress_action,
            "source_url": self.source_url,
        }


@dataclass(frozen=True)
class OutlinePath:
    """
    Eight-level location of an article inside its document.

    Levels run from the most general (book) to the most specific
    (sub_section). Unknown levels are empty strings.
    """
    book_name: str = ""
    part_name: str = ""
    title_name: str = ""
    sub_title_name: str = ""
    chapter_name: str = ""
    sub_chapter_name: str = ""
    section_name: str = ""
    sub_section_name: str = ""

    @classmethod
    def from_titles(cls, titles: Tuple[str, ...]) -> 'OutlinePath':
        """Build a path from titles ordered from the most general level down."""
        return cls(**dict(zip(OUTLINE_LEVELS, titles)))

    def as_tuple(self) -> Tuple[str, ...]:
        return tuple(getattr(self, level) for level in OUTLINE_LEVELS)

    def to_dict(self) -> Dict[str, str]:
        return {level: getattr(self, level) for level in OUTLINE_LEVELS}

    @property
    def depth(self) -> int:
        """Number of filled levels."""
        return sum(1 for value in self.as_tuple() if value)


@dataclass(frozen=True)
class ExtractedParagraph:
    """A numbered paragraph of an article, annotations included."""
    number: str = ""
    text: str = ""


@dataclass(frozen=True)
class ExtractedArticle:
    """
    Article as rebuilt from the rendered page.

    Carries its full outline path and its paragraphs in page order.
    """
    number: str = ""
    title: str = ""
    outline: OutlinePath = field(default_factory=OutlinePath)
    paragraphs: Tuple[ExtractedParagraph, ...] = ()

    def to_records(
        self,
        systematic_number: Optional[str],
        abbreviation: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], ...]:
        """
        Flatten into articles_bern records, one per paragraph.

        An article without paragraphs still yields one record so that
        its heading is persisted.
        """
        paragraphs = self.paragraphs or (ExtractedParagraph(),)
        records = []
        for paragraph in paragraphs:
            record: Dict[str, Any] = {
                "systematic_number": systematic_number,
                "abbreviation": abbreviation,
            }
            record.update(self.outline.to_dict())
            record.update({
                "article_number": self.number,
                "article_title": self.title,
                "paragraph_number": paragraph.number,
                "paragraph_text": paragraph.text,
            })
            records.append(record)
        return tuple(records)


@dataclass(frozen=True)
class ExtractedDocument:
    """
    Aggregate root: one scraped law page.
    """
    header: LawTextHeader
    articles: Tuple[ExtractedArticle, ...] = ()

    @property
    def systematic_number(self) -> Optional[str]:
        return self.header.systematic_number

    @property
    def paragraph_count(self) -> int:
        return sum(max(len(a.paragraphs), 1) for a in self.articles)

    def article_records(self) -> Tuple[Dict[str, Any], ...]:
        """All article records of the document in page order."""
        records = []
        for article in self.articles:
            records.extend(
                article.to_records(
                    self.header.systematic_number,
                    self.header.abbreviation,
                )
            )
        return tuple(records)


class ReconcileOutcome(Enum):
    """What the reconciliation engine did with a record."""
    INSERTED = "inserted"
    UPDATED = "updated"
    NO_OP_EXISTING = "no_op_existing"


@dataclass(frozen=True)
class ReconcileResult:
    """
    Result of reconciling one record against the store.

    row is the stored row as it was before any write (None on insert).
    """
    outcome: ReconcileOutcome
    table: str
    natural_key: Tuple[Any, ...]
    identity: Optional[int] = None
    dirty_fields: Tuple[str, ...] = ()
    row: Optional[Dict[str, Any]] = None

    @property
    def changed(self) -> bool:
        return self.outcome is not ReconcileOutcome.NO_OP_EXISTING


@dataclass(frozen=True)
class ErrorLogEntry:
    """Append-only failure record keyed by natural key."""
    srn: str
    error_text: str
    insert_tsd: Optional[datetime] = None
