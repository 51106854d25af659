"""relgraph Request Translation.

Compiles paginated connection reads and nested create/connect/update
mutations into single parameterized Cypher statements:
- ``parsing``: GraphQL operation to selection IR
- ``read`` / ``mutation``: IR to Cypher
- ``results``: rows to response shape, cursors and PageInfo
"""

from relgraph.translate.exceptions import (
    InvalidInputError,
    MissingRequiredPropertyError,
    NotFoundError,
    QueryBuildError,
)
from relgraph.translate.parsing import RequestParser
from relgraph.translate.results import ResultShaper, collect_not_found
from relgraph.translate.selection import (
    ConnectionSelection,
    CreateMutation,
    EdgeNodeSelection,
    EdgesSelection,
    FieldSelection,
    ListRead,
    NodeListSelection,
    NodeLookup,
    NodeSelection,
    Operation,
    PageInfoSelection,
    RelationshipSelection,
    ResponseSelection,
    TypenameField,
    UpdateMutation,
)
from relgraph.translate.statement import CompiledStatement, StatementExecutor
from relgraph.translate.translator import Translator

__all__ = [
    # Translator
    "Translator",
    "RequestParser",
    "CompiledStatement",
    "StatementExecutor",
    "ResultShaper",
    "collect_not_found",
    # Selection IR
    "Operation",
    "ListRead",
    "NodeLookup",
    "CreateMutation",
    "UpdateMutation",
    "TypenameField",
    "NodeSelection",
    "FieldSelection",
    "RelationshipSelection",
    "ConnectionSelection",
    "EdgesSelection",
    "EdgeNodeSelection",
    "PageInfoSelection",
    "NodeListSelection",
    "ResponseSelection",
    # Exceptions
    "MissingRequiredPropertyError",
    "NotFoundError",
    "InvalidInputError",
    "QueryBuildError",
]
