"""Row stores that listings are read from."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

import aiosqlite

from listing_finder.logging import get_logger

logger = get_logger(__name__)

# Hard upper bound on rows returned by a single read.
MAX_ROWS: Final = 100


class StoreError(Exception):
    """A store read failed (missing table, bad column, connection error)."""


@dataclass(frozen=True)
class TextMatch:
    """Case-insensitive (Unicode casefold) substring match on a column."""

    column: str
    text: str


@dataclass(frozen=True)
class Compare:
    """Range or equality comparison on a column."""

    column: str
    op: Literal[">=", "<=", "="]
    value: Any


Condition = TextMatch | Compare


@dataclass(frozen=True)
class StoreQuery:
    """A single page read from one table.

    ``any_of`` matches are OR-combined into one group; that group and every
    ``all_of`` condition are AND-combined. An empty ``any_of`` places no text
    restriction on the read.
    """

    table: str
    any_of: tuple[TextMatch, ...] = ()
    all_of: tuple[Condition, ...] = ()
    limit: int = MAX_ROWS


class Store(ABC):
    """Abstract read-only row store."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier for this store, used as the schema cache key."""
        ...

    @abstractmethod
    async def fetch(self, query: StoreQuery) -> list[dict[str, Any]]:
        """Read up to ``query.limit`` rows matching the query.

        Raises:
            StoreError: If the read could not be performed.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release connections held by the store."""


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _casefold(value: Any) -> str | None:
    return None if value is None else str(value).casefold()


def _compile_condition(cond: Condition) -> tuple[str, Any]:
    if isinstance(cond, TextMatch):
        # SQLite's own LIKE only folds ASCII; "DÚN" must match "dún"
        return (
            f"instr(casefold(CAST({_quote(cond.column)} AS TEXT)), ?) > 0",
            cond.text.casefold(),
        )
    if cond.op == "=":
        # Ids arrive as strings but may be stored as integers
        return f"CAST({_quote(cond.column)} AS TEXT) = ?", str(cond.value)
    return f"{_quote(cond.column)} {cond.op} ?", cond.value


class SqliteStore(Store):
    """Listing store backed by a SQLite database file."""

    def __init__(self, db_path: str, *, name: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
            name: Cache key for this store; defaults to the path.
        """
        self.db_path = db_path
        self._name = name or db_path
        self._conn: aiosqlite.Connection | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create the database connection."""
        async with self._connect_lock:
            if self._conn is None:
                self._conn = await self._connect()
        return self._conn

    async def _connect(self) -> aiosqlite.Connection:
        if self.db_path != ":memory:" and not Path(self.db_path).exists():
            raise StoreError(f"database file not found: {self.db_path}")
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA busy_timeout=5000")
        await conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def _table_columns(self, conn: aiosqlite.Connection, table: str) -> set[str]:
        async with conn.execute(f"PRAGMA table_info({_quote(table)})") as cursor:
            rows = await cursor.fetchall()
        return {row["name"] for row in rows}

    async def fetch(self, query: StoreQuery) -> list[dict[str, Any]]:
        try:
            conn = await self._get_connection()
            columns = await self._table_columns(conn, query.table)
            if not columns:
                raise StoreError(f"no such table: {query.table}")

            where: list[str] = []
            params: list[Any] = []

            if query.any_of:
                # A text match on a column this table lacks can never succeed
                matches = [m for m in query.any_of if m.column in columns]
                if not matches:
                    return []
                compiled = [_compile_condition(m) for m in matches]
                where.append("(" + " OR ".join(sql for sql, _ in compiled) + ")")
                params.extend(param for _, param in compiled)

            for cond in query.all_of:
                sql, param = _compile_condition(cond)
                where.append(sql)
                params.append(param)

            sql = f"SELECT * FROM {_quote(query.table)}"
            if where:
                sql += " WHERE " + " AND ".join(where)
            sql += " LIMIT ?"
            params.append(min(query.limit, MAX_ROWS))

            async with conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(str(e)) from e

        logger.debug("store_fetch", store=self.name, table=query.table, rows=len(rows))
        return [dict(row) for row in rows]
