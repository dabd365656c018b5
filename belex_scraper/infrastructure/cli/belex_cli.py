"""
BELEX Scraper Command-Line Interface.

Provides commands for:
- crawl: Harvest the systematic index and reconcile every law text
- create-tables: Create the five BELEX tables
- drop-table: Drop one BELEX table
- config: Show configuration
"""
import argparse
import asyncio
import sys
import logging
from typing import Optional, List
from datetime import datetime
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from belex_scraper.application.reconciliation_service import ReconciliationService
from belex_scraper.domain.belex_record_kinds import MANAGED_TABLES
from belex_scraper.domain.belex_repository_ports import RecordStore
from belex_scraper.infrastructure.actors import (
    ActorError,
    BelexCoordinatorActor,
    BelexPersistenceActor,
    BelexScraperActor,
    CrawlStats,
    StartCrawl,
)
from belex_scraper.infrastructure.adapters.belex_browser_adapter import (
    BelexBrowserConfig,
    belex_browser_session,
)
from belex_scraper.infrastructure.adapters.belex_errors import (
    DriverFailure,
    StoreFailure,
)
from belex_scraper.infrastructure.adapters.memory_record_store import MemoryRecordStore
from belex_scraper.infrastructure.adapters.postgres_record_store import connect_record_store
from belex_scraper.infrastructure.cli.belex_config import BelexCliConfig
from belex_scraper.infrastructure.database_settings import DatabaseSettings
from belex_scraper.infrastructure.logging.belex_logger import create_belex_logger


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for BELEX CLI."""
    parser = argparse.ArgumentParser(
        prog="belex-scraper",
        description="BELEX Scraper - Harvest the Bern legal code into a versioned store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s create-tables
  %(prog)s crawl --max-documents 10
  %(prog)s crawl --dry-run --no-headless
  %(prog)s crawl --url https://www.belex.sites.be.ch/app/de/texts_of_law/101.1
  %(prog)s drop-table errorLog
  %(prog)s config --show
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Crawl command
    crawl_parser = subparsers.add_parser(
        "crawl",
        help="Scrape law texts and reconcile them into the store",
        description="Expand the systematic index, scrape every law text and store it",
    )
    _add_crawl_arguments(crawl_parser)

    # Create tables command
    subparsers.add_parser(
        "create-tables",
        help="Create the BELEX tables if they do not exist",
    )

    # Drop table command
    drop_parser = subparsers.add_parser(
        "drop-table",
        help="Drop one BELEX table",
    )
    drop_parser.add_argument(
        "table",
        choices=MANAGED_TABLES,
        help=f"Table to drop: {', '.join(MANAGED_TABLES)}",
    )

    # Config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show configuration",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser


def _add_crawl_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments for the crawl command."""
    parser.add_argument(
        "--index-url",
        type=str,
        help="Systematic index to expand (default: BELEX_INDEX_URL)",
    )

    parser.add_argument(
        "--url",
        action="append",
        default=[],
        help="Scrape this law text URL instead of discovering links (repeatable)",
    )

    parser.add_argument(
        "--max-documents",
        type=int,
        help="Maximum law texts to scrape (default: all)",
    )

    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Run browser in visible mode (for debugging)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Reconcile against an in-memory store instead of PostgreSQL",
    )


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = create_parser()
    return parser.parse_args(args)


def _log_level(verbose: bool, quiet: bool, default: str = "INFO") -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return getattr(logging, default.upper(), logging.INFO)


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_dir: str = "belex_logs",
    level: str = "INFO",
) -> logging.Logger:
    """Configure logging for CLI."""
    log_level = _log_level(verbose, quiet, level)

    # Create log directory
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    # Configure package logger
    logger = logging.getLogger("belex_scraper")
    logger.setLevel(log_level)

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_format = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # File handler
    log_file = Path(log_dir) / f"belex_scraper_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_format = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    return logger


async def run_pipeline(
    store: RecordStore,
    browser_config: BelexBrowserConfig,
    request: StartCrawl,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
) -> Optional[CrawlStats]:
    """
    Wire the actors around one store and one browser and run a crawl.

    Returns:
        Crawl statistics, or None if the coordinator itself failed
    """
    service = ReconciliationService(
        store,
        logger=create_belex_logger("reconciliation", log_dir=log_dir, level=level),
    )

    async with belex_browser_session(browser_config) as browser:
        scraper = BelexScraperActor(browser_adapter=browser)
        persistence = BelexPersistenceActor(service)
        coordinator = BelexCoordinatorActor(
            scraper_actor=scraper,
            persistence_actor=persistence,
            progress_logger=create_belex_logger("coordinator", log_dir=log_dir, level=level),
        )

        await scraper.start()
        await persistence.start()
        await coordinator.start()
        try:
            result = await coordinator.ask(request, timeout=None)
        finally:
            await coordinator.stop()

    if isinstance(result, ActorError):
        return None
    return result


async def run_crawl(
    args: argparse.Namespace,
    config: BelexCliConfig,
    logger: logging.Logger,
) -> int:
    """Execute the crawl command."""
    request = StartCrawl(
        index_url=args.index_url or config.index_url,
        max_documents=args.max_documents if args.max_documents is not None else config.max_documents,
        urls=tuple(args.url or ()),
    )
    browser_config = config.browser_config(headless=False if args.no_headless else None)
    level = _log_level(args.verbose, args.quiet, config.log_level)

    config.ensure_directories()

    try:
        if args.dry_run:
            logger.info("Dry run: reconciling against an in-memory store")
            store = MemoryRecordStore()
            try:
                stats = await run_pipeline(store, browser_config, request, config.log_dir, level)
            finally:
                await store.close()
        else:
            settings = DatabaseSettings.from_env()
            async with connect_record_store(settings) as store:
                await store.create_tables()
                stats = await run_pipeline(store, browser_config, request, config.log_dir, level)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except (StoreFailure, DriverFailure) as e:
        logger.error(f"Crawl aborted: {e}")
        return 1

    if stats is None:
        logger.error("Crawl failed")
        return 1

    logger.info("Crawl summary:")
    for key, value in stats.to_dict().items():
        logger.info(f"  {key}: {value}")

    return 0 if stats.documents_discovered else 1


async def run_create_tables(
    args: argparse.Namespace,
    config: BelexCliConfig,
    logger: logging.Logger,
) -> int:
    """Execute the create-tables command."""
    try:
        settings = DatabaseSettings.from_env()
        async with connect_record_store(settings) as store:
            await store.create_tables()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except StoreFailure as e:
        logger.error(f"Error creating tables: {e}")
        return 1

    return 0


async def run_drop_table(
    args: argparse.Namespace,
    config: BelexCliConfig,
    logger: logging.Logger,
) -> int:
    """Execute the drop-table command."""
    try:
        settings = DatabaseSettings.from_env()
        async with connect_record_store(settings) as store:
            await store.drop_table(args.table)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except StoreFailure as e:
        logger.error(f"Error dropping table {args.table}: {e}")
        return 1

    return 0


async def run_config(
    args: argparse.Namespace,
    config: BelexCliConfig,
    logger: logging.Logger,
) -> int:
    """Execute the config command."""
    if args.show:
        logger.info("Current configuration:")
        for key, value in config.to_dict().items():
            logger.info(f"  {key}: {value}")
        try:
            logger.info(f"  database: {DatabaseSettings.from_env().describe()}")
        except ValueError as e:
            logger.info(f"  database: not configured ({e})")
    else:
        logger.info("Use --show to see the current configuration")

    return 0


async def main_async(args: Optional[List[str]] = None) -> int:
    """Async main entry point."""
    parsed_args = parse_args(args)

    if not parsed_args.command:
        create_parser().print_help()
        return 0

    # Load configuration; a .env in the working directory fills unset variables
    load_dotenv(find_dotenv(usecwd=True))
    try:
        config = BelexCliConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    # Setup logging
    logger = setup_logging(
        verbose=parsed_args.verbose,
        quiet=parsed_args.quiet,
        log_dir=config.log_dir,
        level=config.log_level,
    )

    # Dispatch to command handler
    command_handlers = {
        "crawl": run_crawl,
        "create-tables": run_create_tables,
        "drop-table": run_drop_table,
        "config": run_config,
    }

    handler = command_handlers.get(parsed_args.command)

    if handler:
        return await handler(parsed_args, config, logger)
    else:
        logger.error(f"Unknown command: {parsed_args.command}")
        return 1


def main(args: Optional[List[str]] = None) -> int:
    """Synchronous main entry point."""
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
