import logging
from enum import Enum
from typing import List

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from app.core.errors import UnsafeQueryError

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# SAFETY
# Two gates sit between generated text and execution:
#   is_safe            - substring denylist for natural-language queries
#   check_statements   - parsed statement-kind allow-list, shared by every path
# -----------------------------------------------------------------------------

FORBIDDEN_KEYWORDS = ("DROP", "DELETE", "UPDATE", "ALTER", "TRUNCATE")


def is_safe(statement: str) -> bool:
    """
    Reject text containing any forbidden keyword, in any letter casing.

    This is a plain substring match, not a parser: 'Dropbox' in a literal is
    rejected, while a destructive statement spelled without these keywords
    passes. It complements check_statements and database-level permissions.
    """
    upper_statement = statement.upper()
    return not any(word in upper_statement for word in FORBIDDEN_KEYWORDS)


class StatementKind(Enum):
    """Statement kinds each AI-driven path may execute."""

    READ = "read"
    INSERT = "insert"


# Nodes that write or change structure wherever they appear in a tree
WRITE_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Drop,
    exp.Create,
    exp.Merge,
    exp.Command,
)

ALLOWED_ROOTS = {
    StatementKind.READ: (exp.Query,),
    StatementKind.INSERT: (exp.Insert,),
}


def _rejection_reason(expression: exp.Expression, kind: StatementKind):
    if not isinstance(expression, ALLOWED_ROOTS[kind]):
        return f"{type(expression).__name__} statements are not allowed here"
    for node in expression.find_all(*WRITE_NODES):
        if node is not expression:
            return f"nested {type(node).__name__} is not allowed"
    # SELECT ... INTO creates a table on PostgreSQL
    for select in expression.find_all(exp.Select):
        if select.args.get("into"):
            return "SELECT INTO is not allowed"
    return None


def check_statements(
    statements: List[str], kind: StatementKind, dialect: str = "postgres"
) -> List[str]:
    """
    Parse each statement and check it against the allow-list for `kind`.

    READ accepts exactly one query (SELECT, set operations, WITH ... SELECT).
    INSERT accepts any number of plain INSERT statements.

    Returns the statements that passed; comment-only fragments of an INSERT
    batch are dropped.

    Raises:
        UnsafeQueryError: a statement did not parse or is not allowed.
    """
    accepted = []
    for statement in statements:
        try:
            # A comment after the last ';' parses as a bare Semicolon node
            parsed = [
                e
                for e in sqlglot.parse(statement, read=dialect)
                if e is not None and not isinstance(e, exp.Semicolon)
            ]
        except SqlglotError as error:
            logger.warning(f"Rejected unparseable statement: {error}")
            raise UnsafeQueryError(
                "Generated text is not a statement that can be verified", statement
            ) from error

        if not parsed:
            if kind is StatementKind.INSERT:
                continue
            raise UnsafeQueryError("Generated statement is empty", statement)
        if kind is StatementKind.READ and (len(statements) > 1 or len(parsed) > 1):
            raise UnsafeQueryError("Only a single query may be executed", statement)

        for expression in parsed:
            reason = _rejection_reason(expression, kind)
            if reason:
                logger.warning(f"Rejected generated statement: {reason}")
                raise UnsafeQueryError(f"Unsafe statement blocked: {reason}", statement)
        accepted.append(statement)

    return accepted
