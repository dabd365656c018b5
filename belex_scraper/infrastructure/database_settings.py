"""
Database Settings

Configuration settings for connecting the BELEX scraper to PostgreSQL.

Usage:
    settings = DatabaseSettings.from_env()
    async with connect_record_store(settings) as store:
        ...
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Configuration settings for the relational store.

    Attributes:
        host: PostgreSQL host
        port: PostgreSQL port (default: 5432)
        user: Database user
        password: Password of the database user
        name: Database name
    """

    host: str
    port: int
    user: str
    password: str
    name: str

    @classmethod
    def from_env(cls) -> DatabaseSettings:
        """
        Load settings from environment variables.

        Required environment variables:
            - DB_PASSWORD
            - DB_NAME

        Optional environment variables:
            - DB_HOST (default: localhost)
            - DB_PORT (default: 5432)
            - DB_USER (default: postgres)

        Returns:
            DatabaseSettings instance with validated configuration

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        password = os.environ.get("DB_PASSWORD")
        if not password:
            raise ValueError("Missing required environment variable: DB_PASSWORD")

        name = os.environ.get("DB_NAME")
        if not name:
            raise ValueError("Missing required environment variable: DB_NAME")

        host = os.environ.get("DB_HOST", "localhost")
        user = os.environ.get("DB_USER", "postgres")

        raw_port = os.environ.get("DB_PORT", "5432")
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"DB_PORT must be an integer (got: {raw_port})")

        return cls(
            host=host,
            port=port,
            user=user,
            password=password,
            name=name,
        )

    def describe(self) -> str:
        """Connection target without the password, for log lines."""
        return f"{self.user}@{self.host}:{self.port}/{self.name}"
