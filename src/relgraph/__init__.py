"""relgraph: Relay connections with relationship properties over Neo4j.

Builds an augmented GraphQL schema from declarative base SDL and translates
operations against it into single atomic Cypher statements.

Example:
    >>> from relgraph import GraphEngine, build_schema
    >>> from relgraph.database import DatabaseManager, DatabaseSettings

    >>> served = build_schema(type_defs)
    >>> with DatabaseManager(DatabaseSettings.with_env_overrides()) as manager:
    ...     engine = GraphEngine(served, executor=manager)
    ...     result = engine.execute(query, variables)
"""

from relgraph.engine import GraphEngine, ServedSchema, build_schema
from relgraph.exceptions import RelGraphError, RequestError
from relgraph.schema import SchemaValidationError
from relgraph.settings import RelGraphSettings
from relgraph.translate import (
    InvalidInputError,
    MissingRequiredPropertyError,
    NotFoundError,
    QueryBuildError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "GraphEngine",
    "ServedSchema",
    "build_schema",
    "RelGraphSettings",
    # Exceptions
    "RelGraphError",
    "RequestError",
    "SchemaValidationError",
    "MissingRequiredPropertyError",
    "NotFoundError",
    "InvalidInputError",
    "QueryBuildError",
]
