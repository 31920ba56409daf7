import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import schemas
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ExecutionError, IntrospectionError
from app.core.executor import apply_schema_script, fetch_table
from app.core.introspect import get_schema, list_tables

router = APIRouter(tags=["Schema"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


@router.post("/upload-ddl", response_model=schemas.UploadResponse)
async def upload_ddl(db: db_dep, file: UploadFile = File(...)):
    """
    Apply an uploaded DDL script (CREATE TABLE ...) to the database.
    The script is trusted as-is; only execution errors are reported.
    """
    content = await file.read()
    if not content:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "Uploaded file is empty or unreadable"
        )
    try:
        script = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Uploaded file must be UTF-8 text")

    try:
        await apply_schema_script(db, script)
        tables = await list_tables(db)
    except (ExecutionError, IntrospectionError) as error:
        logging.error(f"Failed to apply schema from {file.filename}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, error.detail())

    return {"message": "Schema applied successfully", "tables": tables}


@router.get("/schema", response_model=schemas.SchemaResponse)
async def read_schema(db: db_dep):
    """Return the textual schema description and the table names."""
    try:
        schema_text = await get_schema(db)
        tables = await list_tables(db)
    except IntrospectionError as error:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, error.detail())
    return schemas.SchemaResponse(schema_text=schema_text, tables=tables)


@router.get("/list-tables", response_model=List[schemas.TablePreview])
async def list_tables_with_preview(db: db_dep):
    """
    Every table with its first rows. Tables that cannot be read are skipped.
    """
    try:
        tables = await list_tables(db)
    except IntrospectionError:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching tables")

    result = []
    for table in tables:
        try:
            _, rows = await fetch_table(db, table, limit=settings.PREVIEW_ROW_LIMIT)
        except ExecutionError as error:
            logging.warning(f"Skipping table {table}: {error}")
            continue
        result.append({"name": table, "data": rows})
    return result
