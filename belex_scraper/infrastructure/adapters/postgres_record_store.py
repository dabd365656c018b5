"""
PostgreSQL Record Store

Repository adapter persisting BELEX records through a single asyncpg
connection. Implements the RecordStore port plus schema management.

Usage:
    async with connect_record_store(DatabaseSettings.from_env()) as store:
        await store.create_tables()
        row = await store.select("lawtext_bern", {"systematic_number": "101.1"})
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

import asyncpg

from belex_scraper.domain.belex_record_kinds import (
    ARCHIVED_AT_COLUMN,
    HISTORY_TABLES,
    IDENTITY_COLUMNS,
    INSERT_TSD_COLUMN,
    MANAGED_TABLES,
)
from .belex_errors import StoreFailure

if TYPE_CHECKING:
    from belex_scraper.infrastructure.database_settings import DatabaseSettings

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS: Dict[str, str] = {
    "errorLog": """
        CREATE TABLE IF NOT EXISTS "errorLog" (
            id SERIAL PRIMARY KEY,
            insert_tsd TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            srn VARCHAR(35),
            error_text TEXT
        )""",
    "lawtext_bern": """
        CREATE TABLE IF NOT EXISTS lawtext_bern (
            "ID" SERIAL PRIMARY KEY,
            "INSERT_TSD" TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            systematic_number VARCHAR(255),
            title TEXT,
            abbreviation VARCHAR(255),
            enactment TEXT,
            ingress_author TEXT,
            ingress_foundation TEXT,
            ingress_action TEXT,
            source_url TEXT
        )""",
    "articles_bern": """
        CREATE TABLE IF NOT EXISTS articles_bern (
            id SERIAL PRIMARY KEY,
            "INSERT_TSD" TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            systematic_number VARCHAR(255),
            abbreviation VARCHAR(255),
            book_name TEXT,
            part_name TEXT,
            title_name TEXT,
            sub_title_name TEXT,
            chapter_name TEXT,
            sub_chapter_name TEXT,
            section_name TEXT,
            sub_section_name TEXT,
            article_number VARCHAR(255),
            article_title TEXT,
            paragraph_number VARCHAR(255),
            paragraph_text TEXT
        )""",
    "lawtext_bern_history": """
        CREATE TABLE IF NOT EXISTS lawtext_bern_history (
            "ID" INT,
            "INSERT_TSD" TIMESTAMP,
            systematic_number VARCHAR(255),
            title TEXT,
            abbreviation VARCHAR(255),
            enactment TEXT,
            ingress_author TEXT,
            ingress_foundation TEXT,
            ingress_action TEXT,
            source_url TEXT,
            archived_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )""",
    "articles_bern_history": """
        CREATE TABLE IF NOT EXISTS articles_bern_history (
            id INT,
            "INSERT_TSD" TIMESTAMP,
            systematic_number VARCHAR(255),
            abbreviation VARCHAR(255),
            book_name TEXT,
            part_name TEXT,
            title_name TEXT,
            sub_title_name TEXT,
            chapter_name TEXT,
            sub_chapter_name TEXT,
            section_name TEXT,
            sub_section_name TEXT,
            article_number VARCHAR(255),
            article_title TEXT,
            paragraph_number VARCHAR(255),
            paragraph_text TEXT,
            archived_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )""",
}

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def quote_identifier(name: str) -> str:
    """Quote a table or column name, preserving its case."""
    return '"' + name.replace('"', '""') + '"'


def _where_clause(key: Mapping[str, Any], first_param: int = 1) -> tuple[str, list[Any]]:
    """
    Build a WHERE clause matching every key column.

    Args:
        key: column -> value
        first_param: index of the first positional parameter

    Returns:
        Tuple of (clause, parameter values)
    """
    conditions = []
    values = []
    for offset, (column, value) in enumerate(key.items()):
        conditions.append(f"{quote_identifier(column)} = ${first_param + offset}")
        values.append(value)
    return " AND ".join(conditions), values


def _affected_rows(status: str) -> int:
    """Parse asyncpg command status such as 'UPDATE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class PostgresRecordStore:
    """
    RecordStore backed by one asyncpg connection.

    The connection is opened once per process and shared by every
    reconciliation; use connect_record_store() to guarantee it is closed.

    Attributes:
        connection: asyncpg connection instance
    """

    def __init__(self, connection: Any) -> None:
        """
        Initialize the store with an open connection.

        Args:
            connection: Connection from asyncpg.connect()
        """
        self._conn = connection

    @property
    def connection(self) -> Any:
        return self._conn

    async def select(
        self,
        table: str,
        key: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Find the current row matching a natural key.

        Args:
            table: Table name
            key: column -> value, all compared with equality

        Returns:
            Row as dictionary, or None if not found

        Raises:
            StoreFailure: If the query fails
        """
        clause, values = _where_clause(key)
        query = f"SELECT * FROM {quote_identifier(table)} WHERE {clause} LIMIT 1"
        try:
            record = await self._conn.fetchrow(query, *values)
        except _STORE_ERRORS as e:
            raise StoreFailure(f"Select from {table} failed: {e}", table=table, operation="select") from e
        return dict(record) if record is not None else None

    async def insert(self, table: str, fields: Mapping[str, Any]) -> Optional[int]:
        """
        Insert one row.

        History rows get archived_at = CURRENT_TIMESTAMP, which inside a
        transaction equals the INSERT_TSD written by the update it precedes.

        Args:
            table: Table name
            fields: column -> value

        Returns:
            Identity assigned by the database, or None for tables without one

        Raises:
            StoreFailure: If the insert fails
        """
        if table in HISTORY_TABLES:
            fields = {column: value for column, value in fields.items() if column != ARCHIVED_AT_COLUMN}
        columns = [quote_identifier(column) for column in fields]
        placeholders = [f"${index}" for index in range(1, len(fields) + 1)]
        if table in HISTORY_TABLES:
            columns.append(quote_identifier(ARCHIVED_AT_COLUMN))
            placeholders.append("CURRENT_TIMESTAMP")
        query = (
            f"INSERT INTO {quote_identifier(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join(placeholders)})"
        )
        identity_column = IDENTITY_COLUMNS.get(table)
        try:
            if identity_column is not None:
                query += f" RETURNING {quote_identifier(identity_column)}"
                return await self._conn.fetchval(query, *fields.values())
            await self._conn.execute(query, *fields.values())
            return None
        except _STORE_ERRORS as e:
            raise StoreFailure(f"Insert into {table} failed: {e}", table=table, operation="insert") from e

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        dirty_fields: Mapping[str, Any],
    ) -> int:
        """
        Apply dirty fields to the rows matching key.

        INSERT_TSD is refreshed on every update, so it always holds the
        last-modified time of the row.

        Returns:
            Number of rows affected

        Raises:
            StoreFailure: If the update fails
        """
        if not dirty_fields:
            return 0

        assignments = [
            f"{quote_identifier(column)} = ${index}"
            for index, column in enumerate(dirty_fields, start=1)
        ]
        assignments.append(f"{quote_identifier(INSERT_TSD_COLUMN)} = CURRENT_TIMESTAMP")
        clause, key_values = _where_clause(key, first_param=len(dirty_fields) + 1)
        query = (
            f"UPDATE {quote_identifier(table)} SET {', '.join(assignments)} "
            f"WHERE {clause}"
        )
        try:
            status = await self._conn.execute(query, *dirty_fields.values(), *key_values)
        except _STORE_ERRORS as e:
            raise StoreFailure(f"Update of {table} failed: {e}", table=table, operation="update") from e
        return _affected_rows(status)

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed writes in one database transaction."""
        async with self._conn.transaction():
            yield self

    async def create_tables(self) -> List[str]:
        """
        Create the five BELEX tables if they do not exist.

        Returns:
            Names of the tables ensured
        """
        for table in MANAGED_TABLES:
            try:
                await self._conn.execute(SCHEMA_STATEMENTS[table])
            except _STORE_ERRORS as e:
                raise StoreFailure(f"Creating {table} failed: {e}", table=table, operation="create") from e
            logger.info(f"{table} table created or already exists.")
        return list(MANAGED_TABLES)

    async def drop_table(self, table: str) -> None:
        """
        Drop one of the BELEX tables.

        Raises:
            ValueError: If table is not managed by this store
            StoreFailure: If the statement fails
        """
        if table not in MANAGED_TABLES:
            raise ValueError(f"Unknown table: {table}")
        try:
            await self._conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(table)}")
        except _STORE_ERRORS as e:
            raise StoreFailure(f"Dropping {table} failed: {e}", table=table, operation="drop") from e
        logger.info(f"{table} table dropped.")

    async def close(self) -> None:
        """Close the underlying connection."""
        await self._conn.close()


@asynccontextmanager
async def connect_record_store(settings: "DatabaseSettings"):
    """
    Context manager for a store session.

    Usage:
        async with connect_record_store(settings) as store:
            await store.create_tables()
    """
    try:
        connection = await asyncpg.connect(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            database=settings.name,
        )
    except _STORE_ERRORS as e:
        raise StoreFailure(f"Error connecting to the database: {e}", operation="connect") from e

    logger.info(f"Connected to database {settings.describe()}")
    store = PostgresRecordStore(connection)
    try:
        yield store
    finally:
        await store.close()
