"""Schema Augmenter.

Pure function from a validated ``DescriptorSet`` to an ``AugmentedSchema``:
the query-facing schema with Relay connections, relationship-property-aware
edges, the create/update/connect input variants, ``updateConnection`` and the
``node(id)`` query.

No schema object is mutated in place. Generated types are collected into a
name-keyed registry; a type generated twice with the same shape is reused, a
different shape under the same name is a ``TypeNameConflictError``. Output
order is fully determined by declaration order, so augmenting the same
descriptors twice yields byte-identical SDL.

Example:
    >>> schema = augment_schema(descriptors)
    >>> print(schema.sdl)
    >>> schema.graphql_schema.get_type("MovieActorsConnection")
"""

from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional, Tuple

from graphql import GraphQLSchema, build_schema, print_schema
from pydantic import BaseModel, PrivateAttr

from relgraph.schema.descriptors import (
    DescriptorSet,
    NodeTypeDescriptor,
    PropertyField,
    RelationshipFieldDescriptor,
    RelationshipPropertiesDescriptor,
)
from relgraph.schema.exceptions import (
    SchemaBuildError,
    SchemaValidationError,
    TypeNameConflictError,
)
from relgraph.schema.naming import (
    connection_type_name,
    edge_type_name,
    plural_field_name,
    pluralize,
    relationship_input_name,
)

logger = logging.getLogger(__name__)

NODE_INTERFACE = "Node"
PAGE_INFO = "PageInfo"

TypeKind = Literal["object", "interface", "input", "enum", "scalar"]


# ---------------------------------------------------------------------------
# Output Model
# ---------------------------------------------------------------------------


class ArgumentDefinition(BaseModel):
    name: str
    type: str

    model_config = {"frozen": True}

    def to_sdl(self) -> str:
        return f"{self.name}: {self.type}"


class FieldDefinition(BaseModel):
    name: str
    type: str
    arguments: Tuple[ArgumentDefinition, ...] = ()

    model_config = {"frozen": True}

    def to_sdl(self) -> str:
        if self.arguments:
            args = ", ".join(a.to_sdl() for a in self.arguments)
            return f"{self.name}({args}): {self.type}"
        return f"{self.name}: {self.type}"

    def argument(self, name: str) -> Optional[ArgumentDefinition]:
        for candidate in self.arguments:
            if candidate.name == name:
                return candidate
        return None


class TypeDefinition(BaseModel):
    """One generated (or carried-over) type of the augmented schema."""

    kind: TypeKind
    name: str
    fields: Tuple[FieldDefinition, ...] = ()
    interfaces: Tuple[str, ...] = ()
    values: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    def field(self, name: str) -> Optional[FieldDefinition]:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        return None

    def to_sdl(self) -> str:
        if self.kind == "scalar":
            return f"scalar {self.name}"
        if self.kind == "enum":
            body = "\n".join(f"  {v}" for v in self.values)
            return f"enum {self.name} {{\n{body}\n}}"
        keyword = {"object": "type", "interface": "interface", "input": "input"}[self.kind]
        header = f"{keyword} {self.name}"
        if self.interfaces:
            header += " implements " + " & ".join(self.interfaces)
        body = "\n".join(f"  {f.to_sdl()}" for f in self.fields)
        return f"{header} {{\n{body}\n}}"


class AugmentedSchema(BaseModel):
    """The augmented, query-facing schema."""

    types: Tuple[TypeDefinition, ...]
    relationship_properties_enabled: bool = True

    model_config = {"frozen": True}

    _graphql_schema: Optional[GraphQLSchema] = PrivateAttr(default=None)

    def get_type(self, name: str) -> Optional[TypeDefinition]:
        for candidate in self.types:
            if candidate.name == name:
                return candidate
        return None

    def render(self) -> str:
        """Raw SDL in generation order."""
        return "\n\n".join(t.to_sdl() for t in self.types) + "\n"

    @property
    def graphql_schema(self) -> GraphQLSchema:
        """The schema as a graphql-core ``GraphQLSchema`` for the transport layer."""
        if self._graphql_schema is None:
            self._graphql_schema = build_schema(self.render())
        return self._graphql_schema

    @property
    def sdl(self) -> str:
        """Canonical SDL printed by graphql-core."""
        return print_schema(self.graphql_schema)


# ---------------------------------------------------------------------------
# Augmentation
# ---------------------------------------------------------------------------


class _TypeRegistry:
    """Name-keyed collection of generated types preserving insertion order."""

    def __init__(self, reserved: Tuple[str, ...]):
        self._types: Dict[str, TypeDefinition] = {}
        self._reserved = set(reserved)
        self.errors: List[SchemaBuildError] = []

    def add(self, definition: TypeDefinition, *, declared: bool = False) -> str:
        name = definition.name
        if name in self._reserved and not declared:
            self.errors.append(TypeNameConflictError(name))
            return name
        existing = self._types.get(name)
        if existing is None:
            self._types[name] = definition
        elif existing != definition:
            self.errors.append(TypeNameConflictError(name))
        return name

    def types(self) -> Tuple[TypeDefinition, ...]:
        return tuple(self._types.values())


class SchemaAugmenter:
    """Derives every generated type from a validated descriptor set.

    Args:
        descriptors: Validated descriptors
        relationship_properties_enabled: When False only the host CRUD shapes
            are generated: no Node/PageInfo, connections, edges, properties
            inputs, ``updateConnection`` or ``node`` query.
    """

    def __init__(
        self,
        descriptors: DescriptorSet,
        relationship_properties_enabled: bool = True,
    ):
        self._descriptors = descriptors
        self._enabled = relationship_properties_enabled
        reserved = (
            tuple(n.name for n in descriptors.nodes)
            + tuple(p.name for p in descriptors.properties)
            + tuple(e.name for e in descriptors.enums)
            + tuple(descriptors.scalars)
        )
        self._registry = _TypeRegistry(reserved)
        self._query_fields: List[FieldDefinition] = []
        self._mutation_fields: List[FieldDefinition] = []

    def augment(self) -> AugmentedSchema:
        """Build the augmented schema.

        Raises:
            SchemaValidationError: If generated names conflict
        """
        descriptors = self._descriptors

        if self._enabled:
            self._registry.add(
                TypeDefinition(
                    kind="interface",
                    name=NODE_INTERFACE,
                    fields=(FieldDefinition(name="id", type="ID!"),),
                )
            )
            self._registry.add(_page_info_type())

        for scalar in descriptors.scalars:
            self._registry.add(TypeDefinition(kind="scalar", name=scalar), declared=True)
        for enum in descriptors.enums:
            self._registry.add(
                TypeDefinition(kind="enum", name=enum.name, values=enum.values),
                declared=True,
            )

        if self._enabled:
            for properties in descriptors.properties:
                self._add_properties(properties)

        for node in descriptors.nodes:
            self._add_node(node)

        if self._enabled:
            self._query_fields.append(
                FieldDefinition(
                    name="node",
                    type=NODE_INTERFACE,
                    arguments=(ArgumentDefinition(name="id", type="ID!"),),
                )
            )

        self._registry.add(
            TypeDefinition(kind="object", name="Query", fields=tuple(self._query_fields))
        )
        if self._mutation_fields:
            self._registry.add(
                TypeDefinition(
                    kind="object", name="Mutation", fields=tuple(self._mutation_fields)
                )
            )

        if self._registry.errors:
            raise SchemaValidationError(self._registry.errors)

        schema = AugmentedSchema(
            types=self._registry.types(),
            relationship_properties_enabled=self._enabled,
        )
        logger.info(
            f"Augmented schema with {len(schema.types)} types "
            f"(relationship properties {'enabled' if self._enabled else 'disabled'})"
        )
        return schema

    # ---------------------------------------------------------------------------
    # Relationship properties
    # ---------------------------------------------------------------------------

    def _add_properties(self, properties: RelationshipPropertiesDescriptor) -> None:
        self._registry.add(
            TypeDefinition(
                kind="interface",
                name=properties.name,
                fields=tuple(_field(p) for p in properties.fields),
            ),
            declared=True,
        )
        self._registry.add(
            TypeDefinition(
                kind="input",
                name=f"{properties.name}CreateInput",
                fields=tuple(_field(p) for p in properties.fields),
            )
        )
        self._registry.add(
            TypeDefinition(
                kind="input",
                name=f"{properties.name}UpdateInput",
                fields=tuple(_field(p, optional=True) for p in properties.fields),
            )
        )
        # Nested create/connect input; required properties are checked by the
        # mutation compiler.
        self._registry.add(
            TypeDefinition(
                kind="input",
                name=f"{properties.name}PropertiesInput",
                fields=tuple(_field(p, optional=True) for p in properties.fields),
            )
        )

    # ---------------------------------------------------------------------------
    # Node types
    # ---------------------------------------------------------------------------

    def _add_node(self, node: NodeTypeDescriptor) -> None:
        fields: List[FieldDefinition] = [FieldDefinition(name="id", type="ID!")]
        fields.extend(_field(f) for f in node.fields)
        for relationship in node.relationships:
            fields.append(
                FieldDefinition(name=relationship.name, type=relationship.type.to_sdl())
            )
            if self._enabled:
                fields.append(self._add_connection(node, relationship))

        self._registry.add(
            TypeDefinition(
                kind="object",
                name=node.name,
                fields=tuple(fields),
                interfaces=(NODE_INTERFACE,) if self._enabled else (),
            ),
            declared=True,
        )

        where = self._add_where_input(node)
        create = self._add_create_input(node)
        update = self._add_update_input(node)
        update_connection = self._add_update_connection_input(node)
        self._add_root_fields(node, where, create, update, update_connection)

    def _add_connection(
        self, node: NodeTypeDescriptor, relationship: RelationshipFieldDescriptor
    ) -> FieldDefinition:
        properties = self._descriptors.properties_of(relationship)
        edge_fields = [
            FieldDefinition(name="cursor", type="String!"),
            FieldDefinition(name="node", type=f"{relationship.related_type}!"),
        ]
        if properties is not None:
            edge_fields.extend(_field(p) for p in properties.fields)

        edge_name = self._registry.add(
            TypeDefinition(
                kind="object",
                name=edge_type_name(node.name, relationship.name),
                fields=tuple(edge_fields),
                interfaces=(properties.name,) if properties is not None else (),
            )
        )
        connection_name = self._registry.add(
            TypeDefinition(
                kind="object",
                name=connection_type_name(node.name, relationship.name),
                fields=(
                    FieldDefinition(name="edges", type=f"[{edge_name}!]!"),
                    FieldDefinition(name="pageInfo", type=f"{PAGE_INFO}!"),
                ),
            )
        )
        return FieldDefinition(
            name=f"{relationship.name}Connection",
            type=f"{connection_name}!",
            arguments=(
                ArgumentDefinition(name="first", type="Int"),
                ArgumentDefinition(name="after", type="String"),
            ),
        )

    # ---------------------------------------------------------------------------
    # Inputs
    # ---------------------------------------------------------------------------

    def _add_where_input(self, node: NodeTypeDescriptor) -> str:
        fields = [FieldDefinition(name="id", type="ID")]
        fields.extend(_field(f, optional=True) for f in node.fields if not f.type.is_list)
        return self._registry.add(
            TypeDefinition(kind="input", name=f"{node.name}Where", fields=tuple(fields))
        )

    def _add_create_input(self, node: NodeTypeDescriptor) -> str:
        fields = [FieldDefinition(name="id", type="ID")]
        fields.extend(_field(f) for f in node.fields)
        for relationship in node.relationships:
            fields.append(
                FieldDefinition(
                    name=relationship.name,
                    type=self._add_field_input(node, relationship),
                )
            )
        return self._registry.add(
            TypeDefinition(kind="input", name=f"{node.name}CreateInput", fields=tuple(fields))
        )

    def _add_update_input(self, node: NodeTypeDescriptor) -> Optional[str]:
        fields = [_field(f, optional=True) for f in node.fields]
        for relationship in node.relationships:
            fields.append(
                FieldDefinition(
                    name=relationship.name,
                    type=self._add_field_input(node, relationship),
                )
            )
        if not fields:
            return None
        return self._registry.add(
            TypeDefinition(kind="input", name=f"{node.name}UpdateInput", fields=tuple(fields))
        )

    def _add_field_input(
        self, node: NodeTypeDescriptor, relationship: RelationshipFieldDescriptor
    ) -> str:
        """Nested create/connect input for one relationship field."""
        related = relationship.related_type
        properties = self._properties_if_enabled(relationship)

        create_fields = [FieldDefinition(name="node", type=f"{related}CreateInput!")]
        connect_fields = [FieldDefinition(name="where", type=f"{related}Where!")]
        if properties is not None:
            create_fields.append(
                FieldDefinition(name="properties", type=f"{properties.name}PropertiesInput")
            )
            connect_fields.append(
                FieldDefinition(name="properties", type=f"{properties.name}PropertiesInput")
            )

        create_name = self._registry.add(
            TypeDefinition(
                kind="input",
                name=relationship_input_name(node.name, relationship.name, "CreateFieldInput"),
                fields=tuple(create_fields),
            )
        )
        connect_name = self._registry.add(
            TypeDefinition(
                kind="input",
                name=relationship_input_name(node.name, relationship.name, "ConnectFieldInput"),
                fields=tuple(connect_fields),
            )
        )
        return self._registry.add(
            TypeDefinition(
                kind="input",
                name=relationship_input_name(node.name, relationship.name, "FieldInput"),
                fields=(
                    FieldDefinition(name="create", type=f"[{create_name}!]"),
                    FieldDefinition(name="connect", type=f"[{connect_name}!]"),
                ),
            )
        )

    def _add_update_connection_input(self, node: NodeTypeDescriptor) -> Optional[str]:
        if not self._enabled:
            return None
        fields: List[FieldDefinition] = []
        for relationship in node.relationships:
            properties = self._descriptors.properties_of(relationship)
            if properties is None:
                continue
            entry = self._registry.add(
                TypeDefinition(
                    kind="input",
                    name=relationship_input_name(
                        node.name, relationship.name, "UpdateConnectionInput"
                    ),
                    fields=(
                        FieldDefinition(
                            name="where", type=f"{relationship.related_type}Where!"
                        ),
                        FieldDefinition(
                            name="properties", type=f"{properties.name}UpdateInput!"
                        ),
                    ),
                )
            )
            fields.append(FieldDefinition(name=relationship.name, type=f"[{entry}!]"))
        if not fields:
            return None
        return self._registry.add(
            TypeDefinition(
                kind="input",
                name=f"{node.name}UpdateConnectionInput",
                fields=tuple(fields),
            )
        )

    # ---------------------------------------------------------------------------
    # Root fields
    # ---------------------------------------------------------------------------

    def _add_root_fields(
        self,
        node: NodeTypeDescriptor,
        where: str,
        create: str,
        update: Optional[str],
        update_connection: Optional[str],
    ) -> None:
        plural = pluralize(node.name)
        field_name = plural_field_name(node.name)

        self._query_fields.append(
            FieldDefinition(
                name=field_name,
                type=f"[{node.name}!]!",
                arguments=(ArgumentDefinition(name="where", type=where),),
            )
        )

        create_response = self._registry.add(
            TypeDefinition(
                kind="object",
                name=f"Create{plural}MutationResponse",
                fields=(FieldDefinition(name=field_name, type=f"[{node.name}!]!"),),
            )
        )
        update_response = self._registry.add(
            TypeDefinition(
                kind="object",
                name=f"Update{plural}MutationResponse",
                fields=(FieldDefinition(name=field_name, type=f"[{node.name}!]!"),),
            )
        )

        self._mutation_fields.append(
            FieldDefinition(
                name=f"create{plural}",
                type=f"{create_response}!",
                arguments=(ArgumentDefinition(name="input", type=f"[{create}!]!"),),
            )
        )

        update_args = [ArgumentDefinition(name="where", type=where)]
        if update is not None:
            update_args.append(ArgumentDefinition(name="update", type=update))
        if update_connection is not None:
            update_args.append(
                ArgumentDefinition(name="updateConnection", type=update_connection)
            )
        self._mutation_fields.append(
            FieldDefinition(
                name=f"update{plural}",
                type=f"{update_response}!",
                arguments=tuple(update_args),
            )
        )

    def _properties_if_enabled(
        self, relationship: RelationshipFieldDescriptor
    ) -> Optional[RelationshipPropertiesDescriptor]:
        if not self._enabled:
            return None
        return self._descriptors.properties_of(relationship)


def augment_schema(
    descriptors: DescriptorSet,
    *,
    relationship_properties_enabled: bool = True,
) -> AugmentedSchema:
    """Augment a validated descriptor set. See ``SchemaAugmenter``."""
    return SchemaAugmenter(descriptors, relationship_properties_enabled).augment()


def _page_info_type() -> TypeDefinition:
    return TypeDefinition(
        kind="object",
        name=PAGE_INFO,
        fields=(
            FieldDefinition(name="hasNextPage", type="Boolean!"),
            FieldDefinition(name="hasPreviousPage", type="Boolean!"),
            FieldDefinition(name="startCursor", type="String"),
            FieldDefinition(name="endCursor", type="String"),
        ),
    )


def _field(field: PropertyField, optional: bool = False) -> FieldDefinition:
    type_ref = field.type.as_optional() if optional else field.type
    return FieldDefinition(name=field.name, type=type_ref.to_sdl())
