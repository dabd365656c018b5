"""
BELEX Record Kinds

Static field tables for every persisted entity kind.

The reconciliation engine never inspects record objects at runtime; it
iterates the FieldSpec table of a RecordKind instead. Each kind names its
current table, its history table, its surrogate identity column and the
fields that form its natural key.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from belex_scraper.domain.belex_entities import OUTLINE_LEVELS


Comparator = Callable[[Any, Any], bool]

INSERT_TSD_COLUMN = "INSERT_TSD"
ARCHIVED_AT_COLUMN = "archived_at"
ERROR_KEY_MAX_LENGTH = 35


def values_equal(incoming: Any, stored: Any) -> bool:
    """Plain value equality on the normalized field."""
    return incoming == stored


def is_empty(value: Any) -> bool:
    """Empty strings and None never count as a population of a field."""
    return value is None or value == ""


@dataclass(frozen=True)
class FieldSpec:
    """One recognized field of a record kind."""
    name: str
    default: Any = ""
    comparator: Comparator = values_equal


@dataclass(frozen=True)
class RecordKind:
    """
    Description of a persisted entity kind.

    Attributes:
        name: Short name used in log lines ("lawtext", "article")
        table: Table holding the current rows
        history_table: Append-only table holding archived rows
        identity_column: Surrogate identity column assigned by the store
        fields: Recognized fields, in insert column order
        key_fields: Names of the fields forming the natural key
        error_key_fields: Fields joined into the errorLog srn
    """
    name: str
    table: str
    history_table: str
    identity_column: str
    fields: Tuple[FieldSpec, ...]
    key_fields: Tuple[str, ...]
    error_key_fields: Tuple[str, ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def default_template(self) -> Dict[str, Any]:
        return {spec.name: spec.default for spec in self.fields}

    def merge(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Merge a record over the default template.

        Unrecognized keys are dropped and None falls back to the field
        default, so every later comparison sees a total set of fields.
        """
        merged = self.default_template()
        for spec in self.fields:
            value = record.get(spec.name)
            if value is not None:
                merged[spec.name] = value
        return merged

    def key_of(self, merged: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: merged[name] for name in self.key_fields}

    def natural_key(self, merged: Mapping[str, Any]) -> Tuple[Any, ...]:
        return tuple(merged[name] for name in self.key_fields)

    def error_key(self, record: Mapping[str, Any]) -> str:
        """Key written to errorLog.srn for a failed record."""
        parts = [
            str(record.get(name))
            for name in self.error_key_fields
            if not is_empty(record.get(name))
        ]
        return "/".join(parts)[:ERROR_KEY_MAX_LENGTH]

    def dirty_fields(
        self,
        merged: Mapping[str, Any],
        stored: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """
        Fields whose incoming value is populated and differs from the stored one.

        An empty incoming value is never dirty, so a later scrape can fill
        in or correct a value but never blank it.
        """
        dirty = {}
        for spec in self.fields:
            value = merged.get(spec.name)
            if is_empty(value):
                continue
            if not spec.comparator(value, stored.get(spec.name)):
                dirty[spec.name] = value
        return dirty

    def history_row(self, stored: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Verbatim copy of a current row for the history table.

        archived_at is left to the store, which stamps it inside the same
        transaction as the update that supersedes the row.
        """
        row: Dict[str, Any] = {
            self.identity_column: stored.get(self.identity_column),
            INSERT_TSD_COLUMN: stored.get(INSERT_TSD_COLUMN),
        }
        for name in self.field_names:
            row[name] = stored.get(name)
        return row

    def identity_of(self, row: Optional[Mapping[str, Any]]) -> Optional[int]:
        if row is None:
            return None
        return row.get(self.identity_column)


LAWTEXT_KIND = RecordKind(
    name="lawtext",
    table="lawtext_bern",
    history_table="lawtext_bern_history",
    identity_column="ID",
    fields=(
        FieldSpec("systematic_number"),
        FieldSpec("title"),
        FieldSpec("abbreviation"),
        FieldSpec("enactment"),
        FieldSpec("ingress_author"),
        FieldSpec("ingress_foundation"),
        FieldSpec("ingress_action"),
        FieldSpec("source_url"),
    ),
    key_fields=("systematic_number",),
    error_key_fields=("systematic_number",),
)

ARTICLE_KIND = RecordKind(
    name="article",
    table="articles_bern",
    history_table="articles_bern_history",
    identity_column="id",
    fields=(
        FieldSpec("systematic_number"),
        FieldSpec("abbreviation"),
        *(FieldSpec(level) for level in OUTLINE_LEVELS),
        FieldSpec("article_number"),
        FieldSpec("article_title"),
        FieldSpec("paragraph_number"),
        FieldSpec("paragraph_text"),
    ),
    key_fields=(
        "systematic_number",
        *OUTLINE_LEVELS,
        "article_number",
        "article_title",
        "paragraph_number",
    ),
    error_key_fields=("systematic_number", "article_number", "paragraph_number"),
)

ERROR_LOG_TABLE = "errorLog"

RECORD_KINDS: Dict[str, RecordKind] = {
    LAWTEXT_KIND.name: LAWTEXT_KIND,
    ARTICLE_KIND.name: ARTICLE_KIND,
}

IDENTITY_COLUMNS: Dict[str, str] = {
    **{kind.table: kind.identity_column for kind in RECORD_KINDS.values()},
    ERROR_LOG_TABLE: "id",
}

HISTORY_TABLES: Tuple[str, ...] = tuple(kind.history_table for kind in RECORD_KINDS.values())

MANAGED_TABLES: Tuple[str, ...] = (
    ERROR_LOG_TABLE,
    LAWTEXT_KIND.table,
    ARTICLE_KIND.table,
    LAWTEXT_KIND.history_table,
    ARTICLE_KIND.history_table,
)
