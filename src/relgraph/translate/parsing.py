"""GraphQL operation adapter.

Walks a validated GraphQL operation against the augmented schema and builds
the selection IR the compilers consume. Field collection follows GraphQL
semantics: aliases become response keys, fields sharing a response key merge
their sub-selections, named and inline fragments apply when their type
condition matches the runtime type, and ``@skip``/``@include`` are honoured.

Argument values are coerced by graphql-core, so nested inputs arrive as plain
dicts and lists with explicit ``null`` kept distinct from omitted fields.

Example:
    >>> parser = RequestParser(served.augmented.graphql_schema, served.descriptors)
    >>> operation = parser.parse(parse("{ movies { title } }"), {})
    >>> operation.fields[0]
    ListRead(alias='movies', type_name='Movie', ...)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLIncludeDirective,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLSkipDirective,
    InlineFragmentNode,
    NamedTypeNode,
    OperationType,
    SelectionSetNode,
    get_named_type,
    is_abstract_type,
)
from graphql.execution.values import get_argument_values, get_directive_values
from graphql.utilities import get_operation_ast, type_from_ast

from relgraph.schema.descriptors import DescriptorSet, NodeTypeDescriptor
from relgraph.schema.naming import (
    connection_type_name,
    edge_type_name,
    plural_field_name,
    pluralize,
)
from relgraph.translate.exceptions import InvalidInputError, QueryBuildError
from relgraph.translate.selection import (
    TYPENAME,
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
    RootField,
    TypenameField,
    UpdateMutation,
)

logger = logging.getLogger(__name__)

CONNECTION_SUFFIX = "Connection"

FieldMap = Dict[str, List[FieldNode]]


class RequestParser:
    """Builds selection IR for operations against one served schema.

    Args:
        schema: The augmented ``GraphQLSchema``
        descriptors: Descriptor set the schema was augmented from
    """

    def __init__(self, schema: GraphQLSchema, descriptors: DescriptorSet):
        self._schema = schema
        self._descriptors = descriptors
        self._root_fields: Dict[Tuple[OperationType, str], Tuple[str, Optional[str]]] = {
            (OperationType.QUERY, "node"): ("node", None),
        }
        for node in descriptors.nodes:
            plural = pluralize(node.name)
            self._root_fields[(OperationType.QUERY, plural_field_name(node.name))] = (
                "list",
                node.name,
            )
            self._root_fields[(OperationType.MUTATION, f"create{plural}")] = (
                "create",
                node.name,
            )
            self._root_fields[(OperationType.MUTATION, f"update{plural}")] = (
                "update",
                node.name,
            )

    def parse(
        self,
        document: DocumentNode,
        variable_values: Dict[str, Any],
        operation_name: Optional[str] = None,
    ) -> Operation:
        """Build the IR of one operation.

        Args:
            document: A document already validated against the schema
            variable_values: Coerced variable values
            operation_name: Operation to run when the document holds several

        Raises:
            InvalidInputError: If the operation cannot be selected
            QueryBuildError: If the operation uses unsupported root fields
        """
        operation = get_operation_ast(document, operation_name)
        if operation is None:
            if operation_name:
                raise InvalidInputError(f"Unknown operation named '{operation_name}'")
            raise InvalidInputError("Must provide operation name if query contains multiple operations")

        if operation.operation == OperationType.QUERY:
            root_type = self._schema.query_type
        elif operation.operation == OperationType.MUTATION:
            root_type = self._schema.mutation_type
        else:
            raise QueryBuildError("subscriptions are not supported")
        if root_type is None:
            raise QueryBuildError(f"schema has no {operation.operation.value} type")

        walker = _SelectionWalker(self._schema, self._descriptors, document, variable_values)
        fields: List[RootField] = []
        for alias, nodes in walker.collect(root_type, [operation.selection_set]).items():
            fields.append(self._root_field(walker, operation.operation, root_type, alias, nodes))

        logger.debug(
            f"Parsed {operation.operation.value} with root fields "
            f"{[f.alias for f in fields]}"
        )
        return Operation(kind=operation.operation.value, fields=tuple(fields))

    def _root_field(
        self,
        walker: "_SelectionWalker",
        operation: OperationType,
        root_type: GraphQLObjectType,
        alias: str,
        nodes: List[FieldNode],
    ) -> RootField:
        name = nodes[0].name.value
        if name == TYPENAME:
            return TypenameField(alias=alias, type_name=root_type.name)

        entry = self._root_fields.get((operation, name))
        if entry is None:
            raise QueryBuildError(f"unsupported root field '{name}'", alias)
        kind, type_name = entry
        args = walker.arguments(root_type, nodes[0])

        if kind == "node":
            return NodeLookup(
                alias=alias,
                id=args["id"],
                variants=tuple(
                    walker.node_selection(node.name, nodes)
                    for node in self._descriptors.nodes
                ),
            )
        if kind == "list":
            return ListRead(
                alias=alias,
                type_name=type_name,
                selection=walker.node_selection(type_name, nodes),
                where=args.get("where") or {},
            )

        response = walker.response_selection(root_type, name, type_name, nodes)
        if kind == "create":
            return CreateMutation(
                alias=alias,
                type_name=type_name,
                inputs=tuple(args.get("input") or ()),
                response=response,
            )
        return UpdateMutation(
            alias=alias,
            type_name=type_name,
            response=response,
            where=args.get("where") or {},
            update=args.get("update") or {},
            update_connection=args.get("updateConnection") or {},
        )


class _SelectionWalker:
    """Per-request field collection state: fragments and variables."""

    def __init__(
        self,
        schema: GraphQLSchema,
        descriptors: DescriptorSet,
        document: DocumentNode,
        variable_values: Dict[str, Any],
    ):
        self._schema = schema
        self._descriptors = descriptors
        self._variables = variable_values
        self._fragments: Dict[str, FragmentDefinitionNode] = {
            definition.name.value: definition
            for definition in document.definitions
            if isinstance(definition, FragmentDefinitionNode)
        }

    # ---------------------------------------------------------------------------
    # Field collection
    # ---------------------------------------------------------------------------

    def collect(
        self,
        runtime_type: GraphQLObjectType,
        selection_sets: Sequence[Optional[SelectionSetNode]],
    ) -> FieldMap:
        """Group the fields of selection sets by response key, in order."""
        fields: FieldMap = {}
        visited: set = set()

        def visit(selection_set: SelectionSetNode) -> None:
            for selection in selection_set.selections:
                if not self._included(selection):
                    continue
                if isinstance(selection, FieldNode):
                    key = selection.alias.value if selection.alias else selection.name.value
                    fields.setdefault(key, []).append(selection)
                elif isinstance(selection, InlineFragmentNode):
                    if self._applies(selection.type_condition, runtime_type):
                        visit(selection.selection_set)
                elif isinstance(selection, FragmentSpreadNode):
                    name = selection.name.value
                    if name in visited:
                        continue
                    visited.add(name)
                    fragment = self._fragments.get(name)
                    if fragment is not None and self._applies(
                        fragment.type_condition, runtime_type
                    ):
                        visit(fragment.selection_set)

        for selection_set in selection_sets:
            if selection_set is not None:
                visit(selection_set)
        return fields

    def _subfields(self, runtime_type: GraphQLObjectType, nodes: List[FieldNode]) -> FieldMap:
        return self.collect(runtime_type, [node.selection_set for node in nodes])

    def _included(self, node) -> bool:
        skip = get_directive_values(GraphQLSkipDirective, node, self._variables)
        if skip and skip.get("if") is True:
            return False
        include = get_directive_values(GraphQLIncludeDirective, node, self._variables)
        if include and include.get("if") is False:
            return False
        return True

    def _applies(
        self, condition: Optional[NamedTypeNode], runtime_type: GraphQLObjectType
    ) -> bool:
        if condition is None:
            return True
        condition_type = type_from_ast(self._schema, condition)
        if condition_type is runtime_type:
            return True
        if is_abstract_type(condition_type):
            return self._schema.is_sub_type(condition_type, runtime_type)
        return False

    def arguments(self, parent_type: GraphQLObjectType, node: FieldNode) -> Dict[str, Any]:
        field_def = parent_type.fields[node.name.value]
        return get_argument_values(field_def, node, self._variables)

    def _object_type(self, name: str) -> GraphQLObjectType:
        object_type = self._schema.get_type(name)
        if not isinstance(object_type, GraphQLObjectType):
            raise QueryBuildError(f"'{name}' is not an object type")
        return object_type

    # ---------------------------------------------------------------------------
    # Selections
    # ---------------------------------------------------------------------------

    def node_selection(self, type_name: str, nodes: List[FieldNode]) -> NodeSelection:
        object_type = self._object_type(type_name)
        node = self._descriptors.node(type_name)

        fields = []
        for alias, field_nodes in self._subfields(object_type, nodes).items():
            name = field_nodes[0].name.value
            if name == TYPENAME or node.field(name) is not None:
                fields.append(FieldSelection(alias=alias, name=name))
                continue

            relationship = node.relationship(name)
            if relationship is not None:
                fields.append(
                    RelationshipSelection(
                        alias=alias,
                        name=name,
                        node=self.node_selection(relationship.related_type, field_nodes),
                    )
                )
                continue

            if name.endswith(CONNECTION_SUFFIX):
                relationship = node.relationship(name[: -len(CONNECTION_SUFFIX)])
                if relationship is not None:
                    fields.append(
                        self._connection_selection(object_type, node, alias, field_nodes)
                    )
                    continue

            raise QueryBuildError(f"unknown field '{name}' on {type_name}", alias)

        return NodeSelection(type_name=type_name, fields=tuple(fields))

    def _connection_selection(
        self,
        object_type: GraphQLObjectType,
        node: NodeTypeDescriptor,
        alias: str,
        nodes: List[FieldNode],
    ) -> ConnectionSelection:
        args = self.arguments(object_type, nodes[0])
        relationship = node.relationship(nodes[0].name.value[: -len(CONNECTION_SUFFIX)])
        connection_type = self._object_type(connection_type_name(node.name, relationship.name))
        edge_type = self._object_type(edge_type_name(node.name, relationship.name))

        fields = []
        for key, field_nodes in self._subfields(connection_type, nodes).items():
            name = field_nodes[0].name.value
            if name == TYPENAME:
                fields.append(FieldSelection(alias=key, name=name))
            elif name == "edges":
                fields.append(
                    EdgesSelection(
                        alias=key,
                        fields=self._edge_fields(edge_type, relationship.related_type, field_nodes),
                    )
                )
            elif name == "pageInfo":
                page_info_type = get_named_type(connection_type.fields[name].type)
                fields.append(
                    PageInfoSelection(
                        alias=key,
                        fields=tuple(
                            FieldSelection(alias=info_key, name=info_nodes[0].name.value)
                            for info_key, info_nodes in self._subfields(
                                page_info_type, field_nodes
                            ).items()
                        ),
                    )
                )
            else:
                raise QueryBuildError(f"unknown field '{name}' on {connection_type.name}", key)

        return ConnectionSelection(
            alias=alias,
            name=relationship.name,
            first=args.get("first"),
            after=args.get("after"),
            fields=tuple(fields),
        )

    def _edge_fields(
        self, edge_type: GraphQLObjectType, related_type: str, nodes: List[FieldNode]
    ) -> tuple:
        fields = []
        for key, field_nodes in self._subfields(edge_type, nodes).items():
            name = field_nodes[0].name.value
            if name == "node":
                fields.append(
                    EdgeNodeSelection(
                        alias=key, node=self.node_selection(related_type, field_nodes)
                    )
                )
            else:
                fields.append(FieldSelection(alias=key, name=name))
        return tuple(fields)

    def response_selection(
        self,
        root_type: GraphQLObjectType,
        field_name: str,
        type_name: str,
        nodes: List[FieldNode],
    ) -> ResponseSelection:
        response_type = get_named_type(root_type.fields[field_name].type)
        list_field = plural_field_name(type_name)

        fields = []
        for key, field_nodes in self._subfields(response_type, nodes).items():
            name = field_nodes[0].name.value
            if name == TYPENAME:
                fields.append(FieldSelection(alias=key, name=name))
            elif name == list_field:
                fields.append(
                    NodeListSelection(
                        alias=key, node=self.node_selection(type_name, field_nodes)
                    )
                )
            else:
                raise QueryBuildError(f"unknown field '{name}' on {response_type.name}", key)

        return ResponseSelection(type_name=response_type.name, fields=tuple(fields))
