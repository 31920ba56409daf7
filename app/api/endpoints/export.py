import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import ExecutionError, IntrospectionError
from app.core.export import export_all_zip, export_table_csv
from app.core.introspect import list_tables

router = APIRouter(tags=["Export"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


@router.get("/download-csv")
async def download_csv(db: db_dep, table: Optional[str] = None):
    """Download one table as CSV (defaults to the first table)."""
    try:
        tables = await list_tables(db)
    except IntrospectionError:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching tables")

    if not table:
        if not tables:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "No table specified")
        table = tables[0]
    elif table not in tables:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Table {table} does not exist")

    try:
        content = await export_table_csv(db, table)
    except ExecutionError as error:
        logging.error(f"CSV export of {table} failed: {error.detail()}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error querying table")

    return Response(
        content.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={table}.csv"},
    )


@router.get("/download-zip")
async def download_zip(db: db_dep):
    """Download every table as CSV files inside all_data.zip."""
    try:
        archive = await export_all_zip(db)
    except (IntrospectionError, ExecutionError) as error:
        logging.error(f"ZIP export failed: {error.detail()}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, error.detail())

    return Response(
        archive,
        media_type="application/zip",
        headers={"Content-Disposition": "attachment; filename=all_data.zip"},
    )
