"""
Progress logging for the BELEX scraper.

Console lines are human-readable and carry the systematic number of the law
text being worked on; an optional log file receives the same records as JSON
lines for later analysis.
"""
import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


@dataclass(frozen=True)
class LogContext:
    """What a log line is about."""
    correlation_id: Optional[str] = None
    systematic_number: Optional[str] = None
    table: Optional[str] = None
    operation: Optional[str] = None


_CONTEXT_FIELDS = ("correlation_id", "systematic_number", "table", "operation")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log files."""

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", None),
            "message": record.getMessage(),
            "duration_ms": getattr(record, "duration_ms", None),
        }
        for name in _CONTEXT_FIELDS:
            data[name] = getattr(record, name, None)
        if record.exc_info and record.exc_info[0]:
            data["error_type"] = record.exc_info[0].__name__
            data["error"] = str(record.exc_info[1])
        return json.dumps(
            {key: value for key, value in data.items() if value is not None},
            default=str,
            ensure_ascii=False,
        )


class HumanFormatter(logging.Formatter):
    """
    Console progress line.

    Example:
        [12:00:00] [INFO] [reconciliation] [BSG 101.1] lawtext_bern inserted (1.50ms)
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{datetime.fromtimestamp(record.created).strftime('%H:%M:%S')}]",
            f"[{record.levelname}]",
        ]
        component = getattr(record, "component", None)
        if component:
            parts.append(f"[{component}]")
        systematic_number = getattr(record, "systematic_number", None)
        if systematic_number:
            parts.append(f"[BSG {systematic_number}]")
        parts.append(record.getMessage())
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            parts.append(f"({duration_ms:.2f}ms)")
        return " ".join(parts)


class BelexLogger:
    """
    Logger for one component of the crawl.

    Usage:
        logger = BelexLogger("reconciliation")
        logger.info("lawtext_bern inserted", LogContext(systematic_number="101.1"))

        with logger.timed_operation("crawl"):
            await crawl()
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        log_file: Optional[Path] = None,
        stream: Any = None,
    ):
        self._component = component
        self._logger = logging.getLogger(f"belex_scraper.{component}")
        self._logger.setLevel(min(level, logging.DEBUG) if log_file else level)
        # Own handlers below; do not repeat lines through the package logger.
        self._logger.propagate = False
        self._logger.handlers.clear()

        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(HumanFormatter())
        self._logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JSONFormatter())
            self._logger.addHandler(file_handler)

    def _log(
        self,
        level: int,
        message: str,
        context: Optional[LogContext] = None,
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
    ) -> None:
        extra: Dict[str, Any] = {"component": self._component, "duration_ms": duration_ms}
        if context:
            for name in _CONTEXT_FIELDS:
                extra[name] = getattr(context, name)
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, context: Optional[LogContext] = None) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, context: Optional[LogContext] = None) -> None:
        self._log(logging.INFO, message, context)

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
    ) -> None:
        self._log(logging.ERROR, message, context, exc_info=exc_info)

    @contextmanager
    def timed_operation(
        self,
        operation: str,
        context: Optional[LogContext] = None,
    ) -> Iterator[LogContext]:
        """Log the duration of the enclosed block; exceptions propagate."""
        context = replace(context or LogContext(), operation=operation)
        self.debug(f"Starting {operation}", context)
        start = time.perf_counter()
        try:
            yield context
        except BaseException:
            duration_ms = (time.perf_counter() - start) * 1000
            self._log(logging.ERROR, f"Failed {operation}", context, duration_ms)
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        self._log(logging.INFO, f"Completed {operation}", context, duration_ms)


def create_belex_logger(
    component: str,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
) -> BelexLogger:
    """Logger writing to stdout and, with log_dir, to belex_<component>.log."""
    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"belex_{component}.log"

    return BelexLogger(component=component, level=level, log_file=log_file)
