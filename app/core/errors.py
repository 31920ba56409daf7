from typing import Optional


class StudioError(Exception):
    """Base class for failures in the introspect / generate / query core."""

    def __init__(self, message: str, statement: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.statement = statement

    def detail(self) -> str:
        if self.statement:
            return f"{self.message}\nSQL: {self.statement}"
        return self.message


class IntrospectionError(StudioError):
    """Catalog metadata could not be read."""


class EmptySchemaError(StudioError):
    """Generation was requested but the database has no tables."""


class GeneratorError(StudioError):
    """The external generator failed or returned unusable text."""


class UnsafeQueryError(StudioError):
    """A generated statement was rejected before execution."""


class ExecutionError(StudioError):
    """A statement failed at the backing store."""


class TransactionError(StudioError):
    """Commit or rollback itself failed."""
