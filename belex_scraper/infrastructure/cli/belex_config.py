"""
BELEX CLI configuration and settings.

Centralizes configuration for the BELEX scraper CLI,
including default values, paths, and environment variables.
Database credentials live in DatabaseSettings.
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any
from pathlib import Path
import os

from belex_scraper.infrastructure.adapters.belex_browser_adapter import (
    BELEX_INDEX_URL,
    BelexBrowserConfig,
)


def _int_env(name: str, default: Optional[int] = None) -> Optional[int]:
    """Integer environment variable; unset or blank gives default."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got: {raw})")


@dataclass(frozen=True)
class BelexCliConfig:
    """Configuration for BELEX CLI operations."""

    # Source
    index_url: str = BELEX_INDEX_URL
    max_documents: Optional[int] = None

    # Browser settings
    headless: bool = True
    browser_timeout_ms: int = 30000
    field_timeout_ms: int = 3000

    # Logging
    log_dir: str = "belex_logs"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'BelexCliConfig':
        """
        Create config from environment variables.

        Raises:
            ValueError: If a numeric variable is not an integer
        """
        return cls(
            index_url=os.getenv("BELEX_INDEX_URL", BELEX_INDEX_URL),
            max_documents=_int_env("BELEX_MAX_DOCUMENTS"),
            headless=os.getenv("BELEX_HEADLESS", "true").lower() == "true",
            browser_timeout_ms=_int_env("BELEX_BROWSER_TIMEOUT", 30000),
            field_timeout_ms=_int_env("BELEX_FIELD_TIMEOUT", 3000),
            log_dir=os.getenv("BELEX_LOG_DIR", "belex_logs"),
            log_level=os.getenv("BELEX_LOG_LEVEL", "INFO"),
        )

    def browser_config(self, headless: Optional[bool] = None) -> BelexBrowserConfig:
        """Browser settings, optionally overriding headless mode."""
        return BelexBrowserConfig(
            headless=self.headless if headless is None else headless,
            timeout_ms=self.browser_timeout_ms,
            field_timeout_ms=self.field_timeout_ms,
        )

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        Path(self.log_dir).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "index_url": self.index_url,
            "max_documents": self.max_documents,
            "headless": self.headless,
            "browser_timeout_ms": self.browser_timeout_ms,
            "field_timeout_ms": self.field_timeout_ms,
            "log_dir": self.log_dir,
            "log_level": self.log_level,
        }
