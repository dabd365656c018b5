"""
Tests for the BELEX Command-Line Interface
"""
import argparse
import logging
import os
import tempfile

import pytest
from unittest.mock import AsyncMock, patch


def _config(temp_dir):
    from belex_scraper.infrastructure.cli.belex_config import BelexCliConfig
    return BelexCliConfig(log_dir=temp_dir)


def _crawl_args(*extra):
    from belex_scraper.infrastructure.cli.belex_cli import parse_args
    return parse_args(["crawl", *extra])


class TestCreateParser:
    """Tests for create_parser."""

    def test_returns_argument_parser(self):
        from belex_scraper.infrastructure.cli.belex_cli import create_parser
        assert isinstance(create_parser(), argparse.ArgumentParser)

    def test_crawl_defaults(self):
        args = _crawl_args()
        assert args.command == "crawl"
        assert args.url == []
        assert args.max_documents is None
        assert args.dry_run is False
        assert args.no_headless is False

    def test_crawl_options(self):
        args = _crawl_args(
            "--url", "https://example.test/101.1",
            "--url", "https://example.test/152.01",
            "--max-documents", "5",
            "--dry-run",
            "--no-headless",
        )
        assert args.url == ["https://example.test/101.1", "https://example.test/152.01"]
        assert args.max_documents == 5
        assert args.dry_run is True
        assert args.no_headless is True

    def test_drop_table_accepts_managed_tables_only(self):
        from belex_scraper.infrastructure.cli.belex_cli import parse_args

        assert parse_args(["drop-table", "errorLog"]).table == "errorLog"
        with pytest.raises(SystemExit):
            parse_args(["drop-table", "users"])

    def test_global_flags(self):
        from belex_scraper.infrastructure.cli.belex_cli import parse_args
        args = parse_args(["-v", "config", "--show"])
        assert args.verbose is True
        assert args.show is True


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_verbose_sets_debug(self):
        from belex_scraper.infrastructure.cli.belex_cli import setup_logging

        with tempfile.TemporaryDirectory() as temp_dir:
            logger = setup_logging(verbose=True, log_dir=temp_dir)
            try:
                assert logger.level == logging.DEBUG
                assert len(logger.handlers) == 2
            finally:
                for handler in logger.handlers:
                    handler.close()
                logger.handlers.clear()


class TestRunCrawl:
    """Tests for run_crawl."""

    @pytest.mark.asyncio
    async def test_missing_database_settings_returns_error(self):
        """A crawl against PostgreSQL needs DB_PASSWORD and DB_NAME."""
        from belex_scraper.infrastructure.cli.belex_cli import run_crawl

        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict(os.environ, {}, clear=True):
                code = await run_crawl(_crawl_args(), _config(temp_dir), logging.getLogger("test"))

        assert code == 1

    @pytest.mark.asyncio
    async def test_dry_run_uses_memory_store(self):
        from belex_scraper.infrastructure.actors.belex_messages import CrawlStats
        from belex_scraper.infrastructure.adapters.memory_record_store import MemoryRecordStore
        from belex_scraper.infrastructure.cli import belex_cli

        pipeline = AsyncMock(return_value=CrawlStats(documents_discovered=2, documents_reconciled=2))
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.object(belex_cli, "run_pipeline", pipeline):
                code = await belex_cli.run_crawl(
                    _crawl_args("--dry-run", "--url", "https://example.test/101.1"),
                    _config(temp_dir),
                    logging.getLogger("test"),
                )

        assert code == 0
        store, browser_config, request = pipeline.call_args.args[:3]
        assert isinstance(store, MemoryRecordStore)
        assert browser_config.headless is True
        assert request.urls == ("https://example.test/101.1",)

    @pytest.mark.asyncio
    async def test_nothing_discovered_returns_error(self):
        from belex_scraper.infrastructure.actors.belex_messages import CrawlStats
        from belex_scraper.infrastructure.cli import belex_cli

        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.object(belex_cli, "run_pipeline", AsyncMock(return_value=CrawlStats())):
                code = await belex_cli.run_crawl(
                    _crawl_args("--dry-run"), _config(temp_dir), logging.getLogger("test"),
                )

        assert code == 1

    @pytest.mark.asyncio
    async def test_driver_failure_returns_error(self):
        from belex_scraper.infrastructure.adapters.belex_errors import BrowserNotAvailableError
        from belex_scraper.infrastructure.cli import belex_cli

        pipeline = AsyncMock(side_effect=BrowserNotAvailableError("Playwright not installed"))
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.object(belex_cli, "run_pipeline", pipeline):
                code = await belex_cli.run_crawl(
                    _crawl_args("--dry-run"), _config(temp_dir), logging.getLogger("test"),
                )

        assert code == 1


class TestOtherCommands:
    """Tests for create-tables, drop-table and config."""

    @pytest.mark.asyncio
    async def test_create_tables_without_settings_returns_error(self):
        from belex_scraper.infrastructure.cli.belex_cli import parse_args, run_create_tables

        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict(os.environ, {}, clear=True):
                code = await run_create_tables(
                    parse_args(["create-tables"]), _config(temp_dir), logging.getLogger("test"),
                )

        assert code == 1

    @pytest.mark.asyncio
    async def test_config_show(self, caplog):
        from belex_scraper.infrastructure.cli.belex_cli import parse_args, run_config

        logger = logging.getLogger("belex_scraper.test_cli")
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict(os.environ, {}, clear=True):
                with caplog.at_level(logging.INFO, logger="belex_scraper.test_cli"):
                    code = await run_config(parse_args(["config", "--show"]), _config(temp_dir), logger)

        assert code == 0
        assert "index_url" in caplog.text
        assert "database: not configured" in caplog.text

    def test_main_without_command_prints_help(self, capsys):
        from belex_scraper.infrastructure.cli.belex_cli import main

        assert main([]) == 0
        assert "belex-scraper" in capsys.readouterr().out

    def test_main_reads_dotenv_from_working_directory(self, tmp_path, monkeypatch, caplog):
        """Variables in ./.env reach DatabaseSettings; the real environment wins."""
        from belex_scraper.infrastructure.cli.belex_cli import main

        log_dir = tmp_path / "logs"
        (tmp_path / ".env").write_text(
            f"DB_PASSWORD=secret\nDB_NAME=belex_dotenv\nDB_HOST=dotenv-host\nBELEX_LOG_DIR={log_dir}\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)

        try:
            with patch.dict(os.environ, {"DB_HOST": "db.internal"}, clear=True):
                with caplog.at_level(logging.INFO, logger="belex_scraper"):
                    code = main(["config", "--show"])
        finally:
            package_logger = logging.getLogger("belex_scraper")
            for handler in package_logger.handlers:
                handler.close()
            package_logger.handlers.clear()

        assert code == 0
        assert "database: postgres@db.internal:5432/belex_dotenv" in caplog.text
        assert log_dir.is_dir()

    def test_main_reports_invalid_environment(self, tmp_path, monkeypatch, capsys):
        """A malformed number fails with a message instead of a traceback."""
        from belex_scraper.infrastructure.cli.belex_cli import main

        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {"BELEX_MAX_DOCUMENTS": "ten"}, clear=True):
            code = main(["crawl", "--dry-run"])

        assert code == 1
        err = capsys.readouterr().err
        assert "Invalid configuration: BELEX_MAX_DOCUMENTS must be an integer (got: ten)" in err
        assert "Traceback" not in err


class TestCrawlLogLevel:
    """The progress loggers follow -v, -q and BELEX_LOG_LEVEL."""

    @pytest.mark.parametrize(
        "flags, env_level, expected",
        [
            ((), "INFO", logging.INFO),
            (("-q",), "INFO", logging.WARNING),
            (("-v",), "INFO", logging.DEBUG),
            ((), "ERROR", logging.ERROR),
        ],
    )
    @pytest.mark.asyncio
    async def test_level_reaches_pipeline(self, flags, env_level, expected):
        from belex_scraper.infrastructure.actors.belex_messages import CrawlStats
        from belex_scraper.infrastructure.cli import belex_cli
        from belex_scraper.infrastructure.cli.belex_config import BelexCliConfig

        pipeline = AsyncMock(return_value=CrawlStats(documents_discovered=1))
        with tempfile.TemporaryDirectory() as temp_dir:
            config = BelexCliConfig(log_dir=temp_dir, log_level=env_level)
            with patch.object(belex_cli, "run_pipeline", pipeline):
                await belex_cli.run_crawl(
                    belex_cli.parse_args([*flags, "crawl", "--dry-run"]),
                    config,
                    logging.getLogger("test"),
                )

        assert pipeline.call_args.args[4] == expected
