# app/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import psycopg

from app.db.pool import get_db_connection, get_db_transaction
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@dataclass(slots=True)
class BatchWrite:
    """One statement of an atomic batch, executed once per parameter tuple."""

    query: str
    params: list[tuple] = field(default_factory=list)
    label: str = "write"


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Dict with row data or None if no results
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return row if row else None
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
                    return row if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        List of dicts with row data
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """
    Execute query and return number of affected rows.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Number of affected rows
    """
    try:
        if connection:
            cursor = await connection.execute(query, params)
            return cursor.rowcount
        else:
            async with await get_db_connection() as conn:
                cursor = await conn.execute(query, params)
                return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e


async def execute_batch(writes: Sequence[BatchWrite]) -> dict[str, int]:
    """
    Apply a batch of writes in a single transaction.

    Either every statement commits or none does. Returns affected row counts
    keyed by each write's label.

    Example:
        counts = await execute_batch([
            BatchWrite("DELETE FROM alerts WHERE id = %s", [(a,) for a in ids], "alerts"),
            BatchWrite("UPDATE availability SET open = false WHERE user_id = %s", rows, "availability"),
        ])
    """
    counts: dict[str, int] = {}
    pending = [write for write in writes if write.params]
    if not pending:
        return counts

    try:
        async with await get_db_transaction() as conn:
            async with conn.cursor() as cur:
                for write in pending:
                    await cur.executemany(write.query, write.params)
                    counts[write.label] = counts.get(write.label, 0) + max(cur.rowcount, 0)

        logger.debug("Batch committed", statements=len(pending), counts=counts)
        return counts

    except psycopg.Error as e:
        logger.error("Batch commit failed", statements=len(pending), error=str(e))
        raise DatabaseError(f"Batch failed: {e}", operation="batch") from e
