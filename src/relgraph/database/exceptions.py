"""Database Exception Hierarchy.

Errors raised while managing the Neo4j connection and schema. Errors raised by
the driver while a compiled statement executes are NOT wrapped here; they
reach the caller unmodified.
"""

from __future__ import annotations

from typing import List, Optional

from relgraph.exceptions import RelGraphError


class DatabaseError(RelGraphError):
    """Base exception for connection and schema management failures.

    Example:
        try:
            manager.connect()
        except DatabaseError as e:
            logger.error(f"Database operation failed: {e}")
    """

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when the database connection fails or is missing.

    Attributes:
        uri: The Neo4j URI that was attempted
        attempts: Number of connection attempts made
        last_error: The underlying error from the last attempt
    """

    def __init__(
        self,
        message: str,
        *,
        uri: Optional[str] = None,
        attempts: int = 1,
        last_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.uri = uri
        self.attempts = attempts
        self.last_error = last_error

    def __str__(self) -> str:
        base = super().__str__()
        if self.uri:
            base = f"{base} (uri={self.uri}, attempts={self.attempts})"
        return base


class SchemaInitializationError(DatabaseError):
    """Raised when constraints or indices cannot be created.

    Attributes:
        failed_elements: Names of constraints/indices that failed
    """

    def __init__(self, message: str, failed_elements: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_elements = list(failed_elements or [])
