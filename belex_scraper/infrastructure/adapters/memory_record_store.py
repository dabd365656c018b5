"""
In-memory Record Store

Implements the RecordStore port with plain dictionaries. Used for dry runs
of the crawl pipeline and as the store in unit tests.

Mimics the relational store closely enough for reconciliation:
- identity columns auto-increment per table, starting at 1
- INSERT_TSD / insert_tsd are stamped on insert and refreshed on update
- history rows get archived_at from the store clock
- inside transaction() every stamp is the transaction start time, like
  CURRENT_TIMESTAMP in PostgreSQL
- transaction() restores every table if the block raises
"""
import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from belex_scraper.domain.belex_record_kinds import (
    ARCHIVED_AT_COLUMN,
    ERROR_LOG_TABLE,
    HISTORY_TABLES,
    IDENTITY_COLUMNS,
    INSERT_TSD_COLUMN,
)
from .belex_errors import StoreFailure

logger = logging.getLogger(__name__)


class MemoryRecordStore:
    """
    Dictionary-backed store.

    Attributes:
        tables: table name -> list of row dicts, in insertion order
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._transaction_time: Optional[datetime] = None
        self._identity_columns = dict(IDENTITY_COLUMNS)
        self._next_ids: Dict[str, int] = {}
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self._closed = False

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Copy of every row of a table."""
        return [dict(row) for row in self.tables.get(table, [])]

    def _now(self) -> datetime:
        return self._transaction_time or self._clock()

    def _check_open(self, table: str, operation: str) -> None:
        if self._closed:
            raise StoreFailure("Store is closed", table=table, operation=operation)

    async def select(
        self,
        table: str,
        key: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        self._check_open(table, "select")
        for row in self.tables.get(table, []):
            if all(row.get(column) == value for column, value in key.items()):
                return dict(row)
        return None

    async def insert(self, table: str, fields: Mapping[str, Any]) -> Optional[int]:
        self._check_open(table, "insert")
        row = dict(fields)
        identity = None
        identity_column = self._identity_columns.get(table)
        if identity_column is not None:
            identity = self._next_ids.get(table, 1)
            self._next_ids[table] = identity + 1
            row[identity_column] = identity
            timestamp_column = "insert_tsd" if table == ERROR_LOG_TABLE else INSERT_TSD_COLUMN
            row[timestamp_column] = self._now()
        if table in HISTORY_TABLES:
            row[ARCHIVED_AT_COLUMN] = self._now()
        self.tables.setdefault(table, []).append(row)
        return identity

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        dirty_fields: Mapping[str, Any],
    ) -> int:
        self._check_open(table, "update")
        affected = 0
        for row in self.tables.get(table, []):
            if all(row.get(column) == value for column, value in key.items()):
                row.update(dirty_fields)
                row[INSERT_TSD_COLUMN] = self._now()
                affected += 1
        return affected

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.tables)
        next_ids = dict(self._next_ids)
        outer_time = self._transaction_time
        self._transaction_time = outer_time or self._clock()
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            self._next_ids = next_ids
            logger.debug("Rolled back in-memory transaction")
            raise
        finally:
            self._transaction_time = outer_time

    async def close(self) -> None:
        self._closed = True
