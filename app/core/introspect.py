import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.types import NullType

from app.core.errors import IntrospectionError
from app.core.schemas import ColumnInfo, TableInfo

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# SCHEMA INTROSPECTION
# Purpose: describe what exists in the default namespace, live on every call.
# Why: prompts and UI must see tables created by a just-applied upload.
# -----------------------------------------------------------------------------


def _render_type(column_type, connection: Connection) -> str:
    # Reflection yields NullType for types the dialect does not recognize
    if isinstance(column_type, NullType):
        return "unknown"
    return column_type.compile(dialect=connection.dialect)


def _read_relations(connection: Connection) -> List[TableInfo]:
    inspector = inspect(connection)
    # Views are queryable too, so they sit beside base tables
    relations = [(name, False) for name in inspector.get_table_names()]
    relations += [(name, True) for name in inspector.get_view_names()]
    tables = []
    for table_name, is_view in sorted(relations):
        columns = [
            ColumnInfo(name=column["name"], type=_render_type(column["type"], connection))
            for column in inspector.get_columns(table_name)
        ]
        tables.append(TableInfo(name=table_name, columns=columns, is_view=is_view))
    return tables


def _read_table_names(connection: Connection) -> List[str]:
    inspector = inspect(connection)
    return sorted(inspector.get_table_names() + inspector.get_view_names())


async def describe_tables(db: AsyncSession) -> List[TableInfo]:
    """
    Read every table and view of the default schema with its columns.

    Tables and views are ordered together by name, columns by declaration
    order. Views are flagged with `is_view`.

    Raises:
        IntrospectionError: catalog metadata could not be read.
    """
    try:
        connection = await db.connection()
        return await connection.run_sync(_read_relations)
    except SQLAlchemyError as error:
        logger.error(f"Schema introspection failed: {error}")
        raise IntrospectionError(f"Could not read the database schema: {error}") from error


async def list_tables(db: AsyncSession) -> List[str]:
    """Table and view names of the default schema, ordered by name."""
    try:
        connection = await db.connection()
        return await connection.run_sync(_read_table_names)
    except SQLAlchemyError as error:
        logger.error(f"Listing tables failed: {error}")
        raise IntrospectionError(f"Could not list tables: {error}") from error


def render_schema(tables: List[TableInfo]) -> str:
    parts = []
    for table in tables:
        keyword = "VIEW" if table.is_view else "TABLE"
        parts.append(f"{keyword} {table.name} (\n")
        for column in table.columns:
            parts.append(f"  {column.name} {column.type},\n")
        parts.append(")\n")
    return "".join(parts)


async def get_schema(db: AsyncSession) -> str:
    """
    Compact textual schema used as prompt context, e.g.

        TABLE restaurants (
          id INTEGER,
          name VARCHAR(100),
        )

    Views render with a VIEW header. Empty string when the database has
    no tables or views.
    """
    return render_schema(await describe_tables(db))
