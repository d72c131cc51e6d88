"""Database connection helpers for the GTFS SQLite database."""

import asyncio
import contextlib
import sqlite3
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from peatus_mcp.data.config import get_settings
from peatus_mcp.errors import StoreTimeoutError

# Primary SQLite result codes that mean "try again later"
TRANSIENT_ERROR_CODES = {
    sqlite3.SQLITE_BUSY,
    sqlite3.SQLITE_LOCKED,
    sqlite3.SQLITE_CANTOPEN,
    sqlite3.SQLITE_IOERR,
    sqlite3.SQLITE_INTERRUPT,
}


def get_db_path() -> Path:
    """Get the database path from settings (PEATUS_DB_PATH or default)."""
    return get_settings().db_path


def get_query_timeout() -> float:
    """Default per-query timeout in seconds."""
    return get_settings().query_timeout_seconds


@asynccontextmanager
async def get_db(
    db_path: Path | None = None,
    timeout: float | None = None,
) -> AsyncIterator[aiosqlite.Connection]:
    """Async context manager for DB connections with Row factory.

    Args:
        db_path: Optional path to the database. If not provided, uses PEATUS_DB_PATH
                 environment variable or defaults to 'data/gtfs.db'.
        timeout: Seconds to wait for the connection (and SQLite locks).

    Yields:
        aiosqlite.Connection configured with Row factory for dict-like access.

    Raises:
        FileNotFoundError: If the database file doesn't exist.
        StoreTimeoutError: If the connection cannot be opened in time.
    """
    if db_path is None:
        db_path = get_db_path()
    if timeout is None:
        timeout = get_query_timeout()

    if not db_path.exists():
        raise FileNotFoundError(
            f"Database not found at {db_path}. Run 'peatus-mcp ingest <gtfs_path>' to create it."
        )

    try:
        db = await asyncio.wait_for(aiosqlite.connect(db_path, timeout=timeout), timeout)
    except TimeoutError as e:
        raise StoreTimeoutError(f"Could not open database {db_path}: {e}") from e
    except sqlite3.OperationalError as e:
        if not is_transient_error(e):
            raise
        raise StoreTimeoutError(f"Could not open database {db_path}: {e}") from e

    try:
        db.row_factory = aiosqlite.Row
        yield db
    finally:
        await db.close()


def is_transient_error(error: sqlite3.OperationalError) -> bool:
    """Whether an SQLite error is worth retrying (locks, I/O, interrupts).

    Schema and SQL errors such as "no such table" are not.
    """
    code = getattr(error, "sqlite_errorcode", None)
    if code is None:
        return False
    # extended result codes carry the primary code in the low byte
    return (code & 0xFF) in TRANSIENT_ERROR_CODES


async def _fetch(
    db: aiosqlite.Connection,
    sql: str,
    params: Iterable[Any],
    one: bool,
) -> Any:
    async with db.execute(sql, tuple(params)) as cursor:
        if one:
            return await cursor.fetchone()
        return await cursor.fetchall()


async def _bounded_fetch(
    db: aiosqlite.Connection,
    sql: str,
    params: Iterable[Any],
    one: bool,
    timeout: float | None,
) -> Any:
    """Run _fetch with a deadline.

    The statement runs on aiosqlite's worker thread and later calls on the
    connection (close included) queue behind it, so on timeout it is
    interrupted and unwound before StoreTimeoutError is raised.
    """
    if timeout is None:
        timeout = get_query_timeout()

    fetch = asyncio.ensure_future(_fetch(db, sql, params, one=one))
    try:
        done, _ = await asyncio.wait({fetch}, timeout=timeout)
        if not done:
            await db.interrupt()
            # fails with SQLITE_INTERRUPT
            with contextlib.suppress(sqlite3.OperationalError):
                await fetch
            raise StoreTimeoutError(f"Query timed out after {timeout}s")
        return fetch.result()
    except sqlite3.OperationalError as e:
        if not is_transient_error(e):
            raise
        raise StoreTimeoutError(f"Database unavailable: {e}") from e
    finally:
        if not fetch.done():
            fetch.cancel()


async def fetch_all(
    db: aiosqlite.Connection,
    sql: str,
    params: Iterable[Any] = (),
    timeout: float | None = None,
) -> list[aiosqlite.Row]:
    """Run a read query and return all rows, bounded by a timeout.

    On timeout the running statement is interrupted, so closing the
    connection afterwards does not wait for it.

    Raises:
        StoreTimeoutError: If the query exceeds the timeout or the database is
            locked or unreadable.
        sqlite3.OperationalError: For any other SQLite error (e.g. a missing table).
    """
    return list(await _bounded_fetch(db, sql, params, one=False, timeout=timeout))


async def fetch_one(
    db: aiosqlite.Connection,
    sql: str,
    params: Iterable[Any] = (),
    timeout: float | None = None,
) -> aiosqlite.Row | None:
    """Run a read query and return the first row (or None), bounded by a timeout.

    Raises:
        StoreTimeoutError: If the query exceeds the timeout or the database is
            locked or unreadable.
        sqlite3.OperationalError: For any other SQLite error.
    """
    return await _bounded_fetch(db, sql, params, one=True, timeout=timeout)
