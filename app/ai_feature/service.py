"""Orchestration of the two AI-driven flows.

generate_data:
1. Describe the live schema
2. Ask the generator for INSERT statements
3. Split and gate them (INSERT only)
4. Execute all-or-nothing
5. Read a best-effort preview

answer_question:
1. Describe the live schema
2. Ask the generator for one SELECT (plus optional chart directive)
3. Separate SQL from the chart directive
4. Validate SQL safety
5. Execute read-only query
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.ai_feature import prompts
from app.ai_feature.generator import TextGenerator, strip_code_fences
from app.core.config import settings
from app.core.errors import (
    EmptySchemaError,
    GeneratorError,
    StudioError,
    UnsafeQueryError,
)
from app.core.executor import execute_batch, execute_query, fetch_table
from app.core.introspect import describe_tables, get_schema, render_schema
from app.core.safety import StatementKind, check_statements, is_safe
from app.core.schemas import (
    ChartKind,
    GenerationRequest,
    GenerationResult,
    QueryResult,
)

logger = logging.getLogger(__name__)


def split_statements(text: str) -> List[str]:
    """Split generator output on ';' and drop empty fragments."""
    return [part.strip() for part in text.split(";") if part.strip()]


def parse_chart_directive(text: str) -> Tuple[str, bool, Optional[ChartKind]]:
    """
    Separate executable SQL from a trailing '-- CHART: <kind>' comment.

    The split is a plain substring split on the marker. Kinds outside
    bar/pie/line/doughnut fall back to bar.

    Returns:
        (sql, is_chart, chart_kind)
    """
    if prompts.CHART_MARKER not in text:
        return text, False, None

    sql, _, directive = text.partition(prompts.CHART_MARKER)
    token = directive.strip().split()[0] if directive.strip() else ""
    token = token.strip("[]'\"`.,;").lower()
    try:
        kind = ChartKind(token)
    except ValueError:
        logger.warning(f"Unknown chart kind {token!r}, using bar")
        kind = ChartKind.BAR
    return sql.strip(), True, kind


async def _generate_text(
    generator: TextGenerator,
    system: str,
    prompt: str,
    temperature: float,
    max_output_tokens: int,
) -> str:
    text = strip_code_fences(
        await generator.complete(system, prompt, temperature, max_output_tokens)
    )
    if not text:
        raise GeneratorError("The generator returned an empty response")
    return text


async def generate_data(
    db: AsyncSession, generator: TextGenerator, request: GenerationRequest
) -> GenerationResult:
    """
    Fill the current schema with synthetic rows.

    Args:
        db: Async database session.
        generator: Text generator used to write the INSERT statements.
        request: Sampling temperature and output length for the generator.

    Returns:
        Success message plus a preview of the first table when it can be read.

    Raises:
        EmptySchemaError: no tables to generate data for.
        GeneratorError: generator failed or produced no statements.
        UnsafeQueryError: a generated statement is not a plain INSERT.
        ExecutionError / TransactionError: the batch was rolled back.
    """
    # Views cannot take INSERTs
    tables = [table for table in await describe_tables(db) if not table.is_view]
    if not tables:
        raise EmptySchemaError("No tables found in database")

    run_token = uuid.uuid4().hex[:6]
    text = await _generate_text(
        generator,
        prompts.GENERATION_SYSTEM,
        prompts.build_generation_prompt(render_schema(tables), run_token),
        request.temperature,
        request.max_tokens,
    )

    statements = check_statements(
        split_statements(text), StatementKind.INSERT, dialect=settings.SQL_DIALECT
    )
    if not statements:
        raise GeneratorError("The generator returned no SQL statements")

    executed = await execute_batch(db, statements)
    logger.info(f"Generated data with {executed} statements over {len(tables)} tables")

    # Preview is cosmetic: the data is already committed
    first_table = tables[0].name
    try:
        _, preview = await fetch_table(db, first_table, limit=settings.PREVIEW_ROW_LIMIT)
    except StudioError as error:
        logger.warning(f"Preview of {first_table} failed: {error}")
        return GenerationResult(message="Data generated successfully")

    return GenerationResult(
        message="Data generated successfully", table=first_table, preview=preview
    )


async def answer_question(
    db: AsyncSession, generator: TextGenerator, question: str
) -> QueryResult:
    """
    Translate a natural-language question to SQL and run it read-only.

    Raises:
        GeneratorError: generator failed or returned nothing.
        UnsafeQueryError: the SQL was blocked and never executed.
        ExecutionError: the query failed at the database.
    """
    schema = await get_schema(db)
    generated = await _generate_text(
        generator,
        prompts.QUERY_SYSTEM,
        prompts.build_query_prompt(schema, question),
        settings.QUERY_TEMPERATURE,
        settings.QUERY_MAX_OUTPUT_TOKENS,
    )

    sql, is_chart, chart_kind = parse_chart_directive(generated)

    if not is_safe(sql):
        logger.warning(f"Blocked unsafe generated query: {sql!r}")
        raise UnsafeQueryError("Unsafe query generated. Operation blocked.", sql)
    check_statements([sql], StatementKind.READ, dialect=settings.SQL_DIALECT)

    _, rows = await execute_query(db, sql)
    logger.info(f"Answered question with {len(rows)} rows (chart={is_chart})")
    return QueryResult(sql=generated, rows=rows, is_chart=is_chart, chart_kind=chart_kind)
