"""
Reconciliation Service

Decides, for each freshly scraped record, whether it is a new entity, an
unchanged duplicate or a modification of a stored one, and archives the
superseded version before overwriting it.

The same algorithm serves every RecordKind:
1. merge the record over the kind's default template
2. look up the current row by natural key; absent -> insert
3. collect dirty fields (populated and different from the stored value)
4. nothing dirty -> no-op
5. otherwise archive the stored row, then apply only the dirty fields

Reconciliations sharing a natural key are serialized by a per-key lock.
"""
import asyncio
import weakref
from typing import Any, Mapping, Optional, Tuple

from belex_scraper.application.error_log import ErrorLogSink
from belex_scraper.domain.belex_entities import (
    ExtractedArticle,
    ExtractedParagraph,
    LawTextHeader,
    ReconcileOutcome,
    ReconcileResult,
)
from belex_scraper.domain.belex_record_kinds import (
    ARTICLE_KIND,
    LAWTEXT_KIND,
    RecordKind,
)
from belex_scraper.domain.belex_repository_ports import RecordStore
from belex_scraper.infrastructure.adapters.belex_errors import (
    ReconciliationError,
    StoreFailure,
)
from belex_scraper.infrastructure.logging.belex_logger import (
    BelexLogger,
    LogContext,
)


class ReconciliationService:
    """
    Versioned insert-or-update engine over a RecordStore.

    Usage:
        service = ReconciliationService(store)
        result = await service.reconcile(LAWTEXT_KIND, {"systematic_number": "101"})
        if result.outcome is ReconcileOutcome.UPDATED:
            ...
    """

    def __init__(
        self,
        store: RecordStore,
        error_log: Optional[ErrorLogSink] = None,
        logger: Optional[BelexLogger] = None,
    ):
        """
        Args:
            store: Store capability shared by every reconciliation
            error_log: Sink for failures (defaults to the errorLog table of store)
            logger: Structured logger for progress lines
        """
        self._store = store
        self._error_log = error_log or ErrorLogSink(store)
        self._logger = logger or BelexLogger("reconciliation")
        self._key_locks: "weakref.WeakValueDictionary[Tuple[Any, ...], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, table: str, natural_key: Tuple[Any, ...]) -> asyncio.Lock:
        lock_key = (table, *natural_key)
        lock = self._key_locks.get(lock_key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[lock_key] = lock
        return lock

    async def reconcile(
        self,
        kind: RecordKind,
        record: Mapping[str, Any],
    ) -> ReconcileResult:
        """
        Insert, update or leave one record.

        Args:
            kind: Record kind describing table, fields and natural key
            record: Field values; unknown keys are ignored

        Returns:
            ReconcileResult describing what was done

        Raises:
            ReconciliationError: If any store operation failed. The failure is
                written to the error log before raising.
        """
        merged = kind.merge(record)
        natural_key = kind.natural_key(merged)
        context = LogContext(
            systematic_number=merged.get("systematic_number") or None,
            table=kind.table,
        )

        lock = self._lock_for(kind.table, natural_key)
        async with lock:
            try:
                return await self._reconcile_merged(kind, merged, natural_key, context)
            except StoreFailure as e:
                error_key = kind.error_key(merged)
                self._logger.error(
                    f"Error reconciling {kind.table}: {e}",
                    context,
                )
                await self._error_log.record(error_key, e)
                raise ReconciliationError(error_key, e, kind=kind.name) from e

    async def _reconcile_merged(
        self,
        kind: RecordKind,
        merged: Mapping[str, Any],
        natural_key: Tuple[Any, ...],
        context: LogContext,
    ) -> ReconcileResult:
        key = kind.key_of(merged)
        existing = await self._store.select(kind.table, key)

        if existing is None:
            identity = await self._store.insert(kind.table, merged)
            self._logger.info(
                f"{kind.table} inserted : {self._describe(kind, merged)} ID: {identity}",
                context,
            )
            return ReconcileResult(
                outcome=ReconcileOutcome.INSERTED,
                table=kind.table,
                natural_key=natural_key,
                identity=identity,
            )

        identity = kind.identity_of(existing)
        dirty = kind.dirty_fields(merged, existing)
        if not dirty:
            self._logger.debug("No update needed", context)
            return ReconcileResult(
                outcome=ReconcileOutcome.NO_OP_EXISTING,
                table=kind.table,
                natural_key=natural_key,
                identity=identity,
                row=existing,
            )

        # Archive must land before the overwrite; both commit together and
        # share the store's transaction timestamp.
        async with self._store.transaction():
            await self._store.insert(
                kind.history_table,
                kind.history_row(existing),
            )
            await self._store.update(kind.table, key, dirty)

        self._logger.info(
            f"{kind.table} updated : {self._describe(kind, existing)} "
            f"({', '.join(dirty)})",
            context,
        )
        return ReconcileResult(
            outcome=ReconcileOutcome.UPDATED,
            table=kind.table,
            natural_key=natural_key,
            identity=identity,
            dirty_fields=tuple(dirty),
            row=existing,
        )

    @staticmethod
    def _describe(kind: RecordKind, row: Mapping[str, Any]) -> str:
        if kind is LAWTEXT_KIND:
            return str(row.get("title") or row.get("systematic_number") or "")
        return f"article {row.get('article_number') or '?'} paragraph {row.get('paragraph_number') or '-'}"

    async def reconcile_law_text(self, header: LawTextHeader) -> ReconcileResult:
        """Reconcile the header of one legal instrument."""
        return await self.reconcile(LAWTEXT_KIND, header.to_record())

    async def reconcile_article(
        self,
        systematic_number: Optional[str],
        abbreviation: Optional[str],
        article: ExtractedArticle,
        paragraph: Optional[ExtractedParagraph] = None,
    ) -> ReconcileResult:
        """Reconcile one paragraph of an article (or the bare article)."""
        paragraph = paragraph or ExtractedParagraph()
        record = dict(article.outline.to_dict())
        record.update({
            "systematic_number": systematic_number,
            "abbreviation": abbreviation,
            "article_number": article.number,
            "article_title": article.title,
            "paragraph_number": paragraph.number,
            "paragraph_text": paragraph.text,
        })
        return await self.reconcile(ARTICLE_KIND, record)
