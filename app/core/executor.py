import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ExecutionError, TransactionError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# -----------------------------------------------------------------------------
# STATEMENT EXECUTOR
# Purpose: run statements against the live store.
#   write path - ordered batch inside one transaction, all or nothing
#   read path  - one statement, rows materialized as column -> value dicts
# Statements go to the driver verbatim, so ':name' inside generated literals
# is never treated as a bind parameter.
# -----------------------------------------------------------------------------


def _driver_message(error: SQLAlchemyError) -> str:
    # DBAPIError keeps the driver's own message on .orig
    return str(getattr(error, "orig", None) or error)


async def _rollback(db: AsyncSession):
    try:
        await db.rollback()
    except SQLAlchemyError as error:
        logger.error(f"Rollback failed: {error}")
        raise TransactionError(f"Rollback failed: {_driver_message(error)}") from error


async def execute_batch(db: AsyncSession, statements: List[str]) -> int:
    """
    Execute statements in order inside a single transaction.

    Empty statements are skipped. On the first failure the transaction is
    rolled back, so none of the batch is visible afterwards.

    Args:
        db: Async database session.
        statements: SQL statements in execution order.

    Returns:
        Number of statements executed.

    Raises:
        ExecutionError: a statement failed (carries the failing statement).
        TransactionError: commit or rollback failed.
    """
    executed = 0
    current = None
    try:
        connection = await db.connection()
        for statement in statements:
            current = statement.strip()
            if not current:
                continue
            await connection.exec_driver_sql(current)
            executed += 1
    except SQLAlchemyError as error:
        logger.error(f"Batch statement failed, rolling back: {error}")
        await _rollback(db)
        raise ExecutionError(
            f"Error executing generated SQL: {_driver_message(error)}", current
        ) from error
    except asyncio.CancelledError:
        logger.warning("Batch cancelled, rolling back open transaction")
        await _rollback(db)
        raise

    try:
        await db.commit()
    except SQLAlchemyError as error:
        logger.error(f"Commit failed: {error}")
        await _rollback(db)
        raise TransactionError(
            f"Transaction commit error: {_driver_message(error)}"
        ) from error

    logger.info(f"Committed batch of {executed} statements")
    return executed


async def execute_query(db: AsyncSession, sql: str) -> Tuple[List[str], List[Row]]:
    """
    Execute one statement and materialize its rows.

    Column names come from the result metadata, so aliases and aggregates
    keep the names the statement gave them. Nothing is committed: the read
    transaction is rolled back once the rows are in memory.

    Returns:
        (columns, rows) - both empty when the statement returns no rows.

    Raises:
        ExecutionError: the statement failed (carries the statement).
    """
    try:
        connection = await db.connection()
        result = await connection.exec_driver_sql(sql)
        if result.returns_rows:
            columns = list(result.keys())
            rows = [dict(zip(columns, record)) for record in result.all()]
        else:
            columns, rows = [], []
    except SQLAlchemyError as error:
        logger.error(f"Query failed: {error}")
        await _rollback(db)
        raise ExecutionError(
            f"Query execution error: {_driver_message(error)}", sql
        ) from error

    await _rollback(db)
    return columns, rows


def quote_table(db: AsyncSession, table: str) -> str:
    return db.bind.dialect.identifier_preparer.quote(table)


async def fetch_table(
    db: AsyncSession, table: str, limit: Optional[int] = None
) -> Tuple[List[str], List[Row]]:
    """Read a whole table, or its first `limit` rows."""
    sql = f"SELECT * FROM {quote_table(db, table)}"
    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    return await execute_query(db, sql)


async def apply_schema_script(db: AsyncSession, script: str):
    """
    Run an uploaded DDL script and commit it.

    The script may hold several statements, so it is handed to the driver
    connection directly instead of through a prepared statement.

    Raises:
        ExecutionError: the script failed.
    """
    try:
        connection = await db.connection()
        raw_connection = await connection.get_raw_connection()
        driver = raw_connection.driver_connection
        # sqlite drivers only run several statements through executescript
        if hasattr(driver, "executescript"):
            await driver.executescript(script)
        else:
            await driver.execute(script)
        await db.commit()
    except Exception as error:
        logger.error(f"Schema script failed: {error}")
        await _rollback(db)
        raise ExecutionError(f"Database error: {error}") from error
