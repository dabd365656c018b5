#!/usr/bin/env python
"""
BELEX Scraper Entry Point.

Main entry point for the BELEX (Bern legal code) scraper CLI.

Usage:
    python -m belex_scraper.belex_main create-tables
    python -m belex_scraper.belex_main crawl --max-documents 10
    python -m belex_scraper.belex_main crawl --dry-run
    python -m belex_scraper.belex_main drop-table errorLog
    python -m belex_scraper.belex_main config --show
"""
import sys


def main() -> int:
    """Main entry point for BELEX CLI."""
    from belex_scraper.infrastructure.cli.belex_cli import main as cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
