"""
Error Log Sink

Append-only record of reconciliation failures, keyed by the natural key of
the record that failed. Writes are best-effort: a failure to log is reported
through the logger and never retried, so it cannot mask the original error.
"""
import logging
import traceback
from typing import Optional, Union

from belex_scraper.domain.belex_record_kinds import ERROR_KEY_MAX_LENGTH, ERROR_LOG_TABLE
from belex_scraper.domain.belex_repository_ports import RecordStore
from belex_scraper.infrastructure.adapters.belex_errors import StoreFailure

logger = logging.getLogger(__name__)


def format_error_text(error: Union[BaseException, str]) -> str:
    """Full traceback for exceptions, plain text otherwise."""
    if isinstance(error, BaseException):
        return "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ).strip()
    return str(error)


class ErrorLogSink:
    """
    Writes ErrorLogEntry rows to the errorLog table.

    Message Protocol:
    - record(key, error) -> id of the new entry, or None if logging failed
    """

    def __init__(self, store: RecordStore):
        self._store = store

    async def record(
        self,
        key: str,
        error: Union[BaseException, str],
    ) -> Optional[int]:
        """
        Append one failure entry.

        Args:
            key: Natural key of the failed record (truncated to the srn width)
            error: Exception or free-text cause

        Returns:
            The entry id, or None when the entry could not be written
        """
        fields = {
            "srn": (key or "")[:ERROR_KEY_MAX_LENGTH],
            "error_text": format_error_text(error),
        }
        try:
            entry_id = await self._store.insert(ERROR_LOG_TABLE, fields)
        except StoreFailure as e:
            logger.error(f"Error inserting into errorLog: {e}")
            return None

        logger.info(f"Error logged with ID: {entry_id}")
        return entry_id
