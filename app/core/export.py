import csv
import io
import zipfile
from typing import Any, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.executor import fetch_table
from app.core.introspect import list_tables


# -----------------------------------------------------------------------------
# EXPORT MODULE
# Purpose: serialize whole tables to CSV text or a ZIP of CSV files.
# -----------------------------------------------------------------------------


def rows_to_csv(columns: List[str], rows: List[Dict[str, Any]]) -> str:
    """
    Header line followed by one line per row; NULL becomes an empty field.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(col) is None else row.get(col) for col in columns])
    return buffer.getvalue()


def tables_to_zip(tables: Dict[str, Tuple[List[str], List[Dict[str, Any]]]]) -> bytes:
    """Return a ZIP (bytes) with one <table>.csv per table."""
    memory = io.BytesIO()
    with zipfile.ZipFile(memory, "w", zipfile.ZIP_DEFLATED) as archive:
        for table, (columns, rows) in tables.items():
            archive.writestr(f"{table}.csv", rows_to_csv(columns, rows))
    return memory.getvalue()


async def export_table_csv(db: AsyncSession, table: str) -> str:
    columns, rows = await fetch_table(db, table)
    return rows_to_csv(columns, rows)


async def export_all_zip(db: AsyncSession) -> bytes:
    tables = {}
    for table in await list_tables(db):
        tables[table] = await fetch_table(db, table)
    return tables_to_zip(tables)
