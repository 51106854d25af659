"""relgraph Engine.

Ties the two stages together:

1. ``build_schema``: base SDL -> Type Descriptor Model -> Schema Validator
   -> Schema Augmenter. Reference and validation errors are reported together
   and no augmented schema is produced while any exists.
2. ``GraphEngine``: parses an operation against the augmented schema,
   compiles each root field into one statement and runs every statement of
   the request in one transaction through a ``StatementExecutor``.

Request errors never reach the database when they are detected while
compiling; errors raised inside the transaction roll it back. Errors raised
by the database driver propagate unmodified.

Example:
    >>> served = build_schema(type_defs)
    >>> with DatabaseManager(DatabaseSettings.with_env_overrides()) as manager:
    ...     engine = GraphEngine(served, executor=manager)
    ...     result = engine.execute("{ movies { title } }")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from graphql import (
    DocumentNode,
    ExecutionResult,
    GraphQLError,
    parse,
    validate,
)
from graphql.execution.values import get_variable_values
from graphql.utilities import get_operation_ast

from relgraph.exceptions import RequestError
from relgraph.pagination import CursorCodec
from relgraph.schema import (
    AugmentedSchema,
    DescriptorSet,
    SchemaValidationError,
    augment_schema,
    build_descriptors,
    validate_descriptors,
)
from relgraph.settings import RelGraphSettings
from relgraph.translate import (
    CompiledStatement,
    Operation,
    RequestParser,
    StatementExecutor,
    Translator,
    TypenameField,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServedSchema:
    """Everything built once per schema and shared by every request.

    Attributes:
        descriptors: The immutable Type Descriptor Model
        augmented: The augmented query-facing schema
        settings: Feature settings the schema was built with
        codec: Cursor codec; its key scopes cursor validity to this schema
    """

    descriptors: DescriptorSet
    augmented: AugmentedSchema
    settings: RelGraphSettings
    codec: CursorCodec

    @property
    def sdl(self) -> str:
        return self.augmented.sdl


def build_schema(
    type_defs: Union[str, DocumentNode],
    settings: Optional[RelGraphSettings] = None,
) -> ServedSchema:
    """Build a served schema from base SDL.

    Validation runs only when the relationship-properties feature is enabled.

    Args:
        type_defs: Base schema SDL
        settings: Feature settings; defaults apply when omitted

    Returns:
        The served schema

    Raises:
        SchemaValidationError: With every reference, validation and naming
            error found
        graphql.GraphQLError: If the SDL does not parse
    """
    settings = settings or RelGraphSettings()
    descriptors, errors = build_descriptors(type_defs)
    if settings.relationship_properties_enabled:
        errors.extend(validate_descriptors(descriptors))
    if errors:
        logger.info(f"Schema build rejected with {len(errors)} error(s)")
        raise SchemaValidationError(errors)

    augmented = augment_schema(
        descriptors,
        relationship_properties_enabled=settings.relationship_properties_enabled,
    )
    # Fails on SDL graphql-core cannot build.
    augmented.graphql_schema

    secret = (
        settings.cursor_secret.get_secret_value().encode("utf-8")
        if settings.cursor_secret is not None
        else None
    )
    logger.info(
        f"Built schema with {len(descriptors.nodes)} node types "
        f"and {len(augmented.types)} augmented types"
    )
    return ServedSchema(
        descriptors=descriptors,
        augmented=augmented,
        settings=settings,
        codec=CursorCodec(secret),
    )


class GraphEngine:
    """Executes GraphQL operations against a served schema.

    Args:
        schema: The served schema
        executor: Database collaborator running compiled statements
    """

    def __init__(self, schema: ServedSchema, executor: StatementExecutor):
        self.schema = schema
        self._executor = executor
        self._parser = RequestParser(schema.augmented.graphql_schema, schema.descriptors)
        self._translator = Translator(schema.descriptors, schema.settings, schema.codec)

    @classmethod
    def from_type_defs(
        cls,
        type_defs: Union[str, DocumentNode],
        executor: StatementExecutor,
        settings: Optional[RelGraphSettings] = None,
    ) -> "GraphEngine":
        """Build the served schema and an engine over it in one step."""
        return cls(build_schema(type_defs, settings), executor)

    def execute(
        self,
        document: Union[str, DocumentNode],
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute one GraphQL operation.

        Syntax, validation and request errors are returned as
        ``ExecutionResult.errors`` with no data. ``connect`` and
        ``updateConnection`` entries that matched nothing are reported as
        errors next to the committed data, unless matches are required, in
        which case the transaction is rolled back and no data is returned.

        Raises:
            neo4j.exceptions.Neo4jError: Database failures, unmodified
        """
        if isinstance(document, str):
            try:
                document = parse(document)
            except GraphQLError as e:
                return ExecutionResult(data=None, errors=[e])

        schema = self.schema.augmented.graphql_schema
        validation_errors = validate(schema, document)
        if validation_errors:
            return ExecutionResult(data=None, errors=validation_errors)

        operation_ast = get_operation_ast(document, operation_name)
        coerced: Dict[str, Any] = {}
        if operation_ast is not None:
            values = get_variable_values(
                schema, operation_ast.variable_definitions or (), variables or {}
            )
            if isinstance(values, list):
                return ExecutionResult(data=None, errors=values)
            coerced = values

        try:
            operation = self._parser.parse(document, coerced, operation_name)
            return self.run(operation)
        except RequestError as e:
            logger.info(f"Request rejected: {e}")
            return ExecutionResult(
                data=None, errors=[GraphQLError(str(e), original_error=e)]
            )

    def run(self, operation: Operation) -> ExecutionResult:
        """Compile and execute a parsed operation.

        Raises:
            RequestError: If compilation fails or a required match is missing
        """
        statements: Dict[str, CompiledStatement] = {}
        for field in operation.fields:
            if not isinstance(field, TypenameField):
                statements[field.alias] = self._translator.compile(field)

        rows = self._executor.execute(
            list(statements.values()), write=operation.is_mutation
        )
        rows_by_alias = dict(zip(statements, rows))

        data: Dict[str, Any] = {}
        errors: List[GraphQLError] = []
        for field in operation.fields:
            if isinstance(field, TypenameField):
                data[field.alias] = field.type_name
                continue
            statement = statements[field.alias]
            field_rows = rows_by_alias[field.alias]
            data[field.alias] = statement.shape(field_rows)
            for missing in statement.not_found(field_rows):
                errors.append(
                    GraphQLError(str(missing), path=[field.alias], original_error=missing)
                )

        return ExecutionResult(data=data, errors=errors or None)
