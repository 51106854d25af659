"""relgraph Database Module.

Neo4j connection configuration and lifecycle management:
- DatabaseSettings: Pydantic configuration for credentials, pooling and retries
- DatabaseManager: Connection, constraint initialization and single-transaction
  statement execution
- Exception hierarchy for connection and schema failures

Example:
    >>> from relgraph.database import DatabaseManager, DatabaseSettings

    >>> with DatabaseManager(DatabaseSettings.with_env_overrides()) as manager:
    ...     manager.initialize_schema(served.descriptors, served.settings)
"""

from relgraph.database.config import DatabaseSettings
from relgraph.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    SchemaInitializationError,
)
from relgraph.database.manager import DatabaseManager

__all__ = [
    # Configuration
    "DatabaseSettings",
    # Manager
    "DatabaseManager",
    # Exceptions
    "DatabaseError",
    "DatabaseConnectionError",
    "SchemaInitializationError",
]
