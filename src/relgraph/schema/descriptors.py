"""Type Descriptor Model.

Immutable, in-memory description of the base schema: node types, their
scalar properties, relationship fields and relationship-properties interfaces.
Descriptors are built once per schema build from GraphQL SDL (parsed with
graphql-core) and are read-only afterwards.

Relationship fields refer to their related node type and properties interface
by *name*. Resolution happens lazily through ``DescriptorSet`` lookups so that
mutually recursive relationships (``Movie.actors`` / ``Actor.movies``) never
need construction-order tricks.

Example:
    >>> descriptors, errors = build_descriptors('''
    ...     type Movie {
    ...         title: String
    ...         actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
    ...     }
    ...     type Actor {
    ...         name: String!
    ...         movies: [Movie!]! @relationship(type: "ACTED_IN", direction: OUT, properties: "ActedIn")
    ...     }
    ...     interface ActedIn @relationshipProperties { screenTime: Int! }
    ... ''')
    >>> descriptors.paired("Movie", "actors")[1].name
    'movies'
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

from graphql import (
    DocumentNode,
    EnumTypeDefinitionNode,
    FieldDefinitionNode,
    InterfaceTypeDefinitionNode,
    ListTypeNode,
    NamedTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    TypeNode,
    parse,
    value_from_ast_untyped,
)
from pydantic import BaseModel, PrivateAttr

from relgraph.schema.exceptions import (
    InvalidDirectiveError,
    SchemaBuildError,
    SchemaReferenceError,
    UnsupportedFieldTypeError,
)

logger = logging.getLogger(__name__)


BUILTIN_SCALARS: Tuple[str, ...] = ("ID", "String", "Int", "Float", "Boolean")
ROOT_TYPE_NAMES: Tuple[str, ...] = ("Query", "Mutation", "Subscription")

IDENTIFIER_FIELD = "id"
RELATIONSHIP_DIRECTIVE = "relationship"
PROPERTIES_DIRECTIVE = "relationshipProperties"
IDENTIFIER_DIRECTIVE = "identifier"


class RelationshipDirection(str, Enum):
    """Direction of a relationship as seen from the declaring node type."""

    IN = "IN"
    OUT = "OUT"

    @property
    def opposite(self) -> "RelationshipDirection":
        if self is RelationshipDirection.IN:
            return RelationshipDirection.OUT
        return RelationshipDirection.IN


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class TypeReference(BaseModel):
    """A GraphQL type reference: named type plus list/nullability wrappers."""

    name: str
    non_null: bool = False
    is_list: bool = False
    item_non_null: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_ast(cls, node: TypeNode) -> "TypeReference":
        non_null = isinstance(node, NonNullTypeNode)
        if non_null:
            node = node.type
        if isinstance(node, ListTypeNode):
            item = node.type
            item_non_null = isinstance(item, NonNullTypeNode)
            if item_non_null:
                item = item.type
            if not isinstance(item, NamedTypeNode):
                raise ValueError("Nested list types are not supported")
            return cls(
                name=item.name.value,
                non_null=non_null,
                is_list=True,
                item_non_null=item_non_null,
            )
        return cls(name=node.name.value, non_null=non_null)

    def to_sdl(self) -> str:
        """Render as SDL, e.g. ``[Actor!]!``."""
        if self.is_list:
            rendered = f"[{self.name}{'!' if self.item_non_null else ''}]"
        else:
            rendered = self.name
        return f"{rendered}!" if self.non_null else rendered

    def as_optional(self) -> "TypeReference":
        return self.model_copy(update={"non_null": False})

    def __str__(self) -> str:
        return self.to_sdl()


class PropertyField(BaseModel):
    """A scalar or enum valued field, stored as a graph property.

    Attributes:
        name: Field name exposed in the schema
        type: Declared type reference
        source_property: Name of the stored property backing the field
    """

    name: str
    type: TypeReference
    source_property: str

    model_config = {"frozen": True}

    @property
    def required(self) -> bool:
        return self.type.non_null


class IdentifierDescriptor(BaseModel):
    """The identifier field of a node type.

    Attributes:
        field_name: Always ``id``; exposed through the ``Node`` interface
        source_property: Stored property backing the identifier
        declared_type: Type as declared in the base schema, ``None`` when the
            field was not declared and will be added by augmentation
    """

    field_name: str = IDENTIFIER_FIELD
    source_property: str = IDENTIFIER_FIELD
    declared_type: Optional[TypeReference] = None

    model_config = {"frozen": True}

    @property
    def declared(self) -> bool:
        return self.declared_type is not None


class RelationshipPropertiesDescriptor(BaseModel):
    """Shape of the properties stored on a relationship."""

    name: str
    fields: Tuple[PropertyField, ...] = ()
    identifier_directive_fields: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    def field(self, name: str) -> Optional[PropertyField]:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        return None

    @property
    def required_fields(self) -> Tuple[PropertyField, ...]:
        return tuple(f for f in self.fields if f.required)

    def signature(self) -> Tuple[Tuple[str, str], ...]:
        """Order-independent structural signature: (name, SDL type) pairs."""
        return tuple(sorted((f.name, f.type.to_sdl()) for f in self.fields))

    def structural_differences(
        self, other: "RelationshipPropertiesDescriptor"
    ) -> List[str]:
        """Describe every property that differs between two descriptors."""
        mine = dict(self.signature())
        theirs = dict(other.signature())
        differences: List[str] = []
        for name in sorted(set(mine) | set(theirs)):
            if name not in theirs:
                differences.append(f"'{name}' only declared by {self.name}")
            elif name not in mine:
                differences.append(f"'{name}' only declared by {other.name}")
            elif mine[name] != theirs[name]:
                differences.append(
                    f"'{name}' is {mine[name]} in {self.name} "
                    f"but {theirs[name]} in {other.name}"
                )
        return differences

    def is_structurally_identical(
        self, other: "RelationshipPropertiesDescriptor"
    ) -> bool:
        return self.signature() == other.signature()


class RelationshipFieldDescriptor(BaseModel):
    """A relationship field declared on a node type.

    ``related_type`` and ``properties`` are names, resolved through the owning
    ``DescriptorSet``.
    """

    name: str
    type: TypeReference
    related_type: str
    direction: RelationshipDirection
    relationship_type: str
    properties: Optional[str] = None

    model_config = {"frozen": True}


class NodeTypeDescriptor(BaseModel):
    """A node type: identifier, scalar properties and relationship fields."""

    name: str
    identifier: IdentifierDescriptor = IdentifierDescriptor()
    fields: Tuple[PropertyField, ...] = ()
    relationships: Tuple[RelationshipFieldDescriptor, ...] = ()
    identifier_directive_fields: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    def field(self, name: str) -> Optional[PropertyField]:
        """Look up a scalar field; ``id`` resolves to the identifier."""
        if name == self.identifier.field_name:
            return self.identifier_field
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        return None

    def relationship(self, name: str) -> Optional[RelationshipFieldDescriptor]:
        for candidate in self.relationships:
            if candidate.name == name:
                return candidate
        return None

    @property
    def identifier_field(self) -> PropertyField:
        return PropertyField(
            name=self.identifier.field_name,
            type=TypeReference(name="ID", non_null=True),
            source_property=self.identifier.source_property,
        )


class EnumDescriptor(BaseModel):
    name: str
    values: Tuple[str, ...]

    model_config = {"frozen": True}


class DescriptorSet(BaseModel):
    """All descriptors extracted from one base schema, with lookups."""

    nodes: Tuple[NodeTypeDescriptor, ...] = ()
    properties: Tuple[RelationshipPropertiesDescriptor, ...] = ()
    enums: Tuple[EnumDescriptor, ...] = ()
    scalars: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    _nodes_by_name: Dict[str, NodeTypeDescriptor] = PrivateAttr(default_factory=dict)
    _properties_by_name: Dict[str, RelationshipPropertiesDescriptor] = PrivateAttr(
        default_factory=dict
    )

    def model_post_init(self, __context: object) -> None:
        self._nodes_by_name = {n.name: n for n in self.nodes}
        self._properties_by_name = {p.name: p for p in self.properties}

    # ---------------------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------------------

    def has_node(self, name: str) -> bool:
        return name in self._nodes_by_name

    def node(self, name: str) -> NodeTypeDescriptor:
        """Get a node type by name.

        Raises:
            KeyError: If no node type has that name
        """
        try:
            return self._nodes_by_name[name]
        except KeyError:
            raise KeyError(f"Unknown node type '{name}'") from None

    def relationship(self, type_name: str, field_name: str) -> RelationshipFieldDescriptor:
        """Get a relationship field by owning type and field name.

        Raises:
            KeyError: If the type or field does not exist
        """
        relationship = self.node(type_name).relationship(field_name)
        if relationship is None:
            raise KeyError(f"{type_name} has no relationship field '{field_name}'")
        return relationship

    def related(self, relationship: RelationshipFieldDescriptor) -> NodeTypeDescriptor:
        return self.node(relationship.related_type)

    def properties_of(
        self, relationship: RelationshipFieldDescriptor
    ) -> Optional[RelationshipPropertiesDescriptor]:
        if relationship.properties is None:
            return None
        return self._properties_by_name.get(relationship.properties)

    def properties_interface(self, name: str) -> Optional[RelationshipPropertiesDescriptor]:
        return self._properties_by_name.get(name)

    def paired(
        self, type_name: str, field_name: str
    ) -> Optional[Tuple[NodeTypeDescriptor, RelationshipFieldDescriptor]]:
        """Find the other end of a relationship, if it is declared.

        The paired end lives on the related type, targets the declaring type,
        uses the same relationship type label and the opposite direction.
        """
        relationship = self.relationship(type_name, field_name)
        if not self.has_node(relationship.related_type):
            return None
        related = self.node(relationship.related_type)
        for candidate in related.relationships:
            if related.name == type_name and candidate.name == field_name:
                continue
            if (
                candidate.related_type == type_name
                and candidate.relationship_type == relationship.relationship_type
                and candidate.direction == relationship.direction.opposite
            ):
                return related, candidate
        return None

    def relationship_pairs(
        self,
    ) -> List[Tuple[Tuple[str, str], Tuple[str, str]]]:
        """Every declared pair once, as ((type, field), (type, field))."""
        seen: Set[Tuple[str, str]] = set()
        pairs = []
        for node in self.nodes:
            for relationship in node.relationships:
                key = (node.name, relationship.name)
                if key in seen:
                    continue
                other = self.paired(node.name, relationship.name)
                if other is None:
                    continue
                other_key = (other[0].name, other[1].name)
                seen.update({key, other_key})
                pairs.append((key, other_key))
        return pairs


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def build_descriptors(
    type_defs: Union[str, DocumentNode],
) -> Tuple[DescriptorSet, List[SchemaBuildError]]:
    """Build the descriptor model from base schema SDL.

    Reference problems do not stop the build; they are returned so they can be
    reported together with validation errors. Offending fields are left out of
    the returned descriptors.

    Args:
        type_defs: SDL string or an already parsed document

    Returns:
        Tuple of (descriptor set, collected build errors)

    Raises:
        graphql.GraphQLError: If the SDL does not parse
    """
    document = parse(type_defs) if isinstance(type_defs, str) else type_defs
    errors: List[SchemaBuildError] = []

    objects: List[ObjectTypeDefinitionNode] = []
    interfaces: Dict[str, InterfaceTypeDefinitionNode] = {}
    enums: List[EnumDescriptor] = []
    scalars: List[str] = []

    for definition in document.definitions:
        if isinstance(definition, ObjectTypeDefinitionNode):
            if definition.name.value in ROOT_TYPE_NAMES:
                logger.warning(
                    f"Ignoring root type '{definition.name.value}' declared in base schema"
                )
                continue
            objects.append(definition)
        elif isinstance(definition, InterfaceTypeDefinitionNode):
            interfaces[definition.name.value] = definition
        elif isinstance(definition, EnumTypeDefinitionNode):
            enums.append(
                EnumDescriptor(
                    name=definition.name.value,
                    values=tuple(v.name.value for v in definition.values or ()),
                )
            )
        elif isinstance(definition, ScalarTypeDefinitionNode):
            scalars.append(definition.name.value)
        else:
            logger.warning(
                f"Ignoring unsupported definition of kind '{definition.kind}'"
            )

    node_names = {o.name.value for o in objects}
    leaf_names = set(BUILTIN_SCALARS) | {e.name for e in enums} | set(scalars)

    referenced_interfaces: Set[str] = set()
    nodes: List[NodeTypeDescriptor] = []
    for definition in objects:
        node = _build_node(
            definition, node_names, leaf_names, set(interfaces), errors
        )
        referenced_interfaces.update(
            r.properties for r in node.relationships if r.properties
        )
        nodes.append(node)

    properties: List[RelationshipPropertiesDescriptor] = []
    for name, definition in interfaces.items():
        if name not in referenced_interfaces and not _has_directive(
            definition, PROPERTIES_DIRECTIVE
        ):
            logger.warning(
                f"Ignoring interface '{name}': not used as relationship properties"
            )
            continue
        properties.append(_build_properties(definition, leaf_names, errors))

    descriptors = DescriptorSet(
        nodes=tuple(nodes),
        properties=tuple(properties),
        enums=tuple(enums),
        scalars=tuple(scalars),
    )
    logger.debug(
        f"Built descriptors: {len(nodes)} node types, "
        f"{len(properties)} relationship properties interfaces, "
        f"{len(errors)} reference errors"
    )
    return descriptors, errors


def _build_node(
    definition: ObjectTypeDefinitionNode,
    node_names: Set[str],
    leaf_names: Set[str],
    interface_names: Set[str],
    errors: List[SchemaBuildError],
) -> NodeTypeDescriptor:
    type_name = definition.name.value
    identifier = IdentifierDescriptor()
    fields: List[PropertyField] = []
    relationships: List[RelationshipFieldDescriptor] = []
    directive_fields: List[str] = []

    for field in definition.fields or ():
        field_name = field.name.value
        type_ref = _field_type(type_name, field, errors)
        if type_ref is None:
            continue
        override = _identifier_override(field)
        if override is not None:
            directive_fields.append(field_name)

        if field_name == IDENTIFIER_FIELD:
            identifier = IdentifierDescriptor(
                source_property=override or IDENTIFIER_FIELD,
                declared_type=type_ref,
            )
            continue

        relationship_directive = _directive(field, RELATIONSHIP_DIRECTIVE)
        if relationship_directive is not None:
            relationship = _build_relationship(
                type_name, field, type_ref, node_names, interface_names, errors
            )
            if relationship is not None:
                relationships.append(relationship)
            continue

        if type_ref.name in node_names:
            errors.append(
                SchemaReferenceError(
                    type_name,
                    field_name,
                    type_ref.name,
                    message=(
                        f"{type_name}.{field_name} references node type "
                        f"'{type_ref.name}' without a @relationship directive"
                    ),
                )
            )
            continue
        if type_ref.name not in leaf_names:
            errors.append(SchemaReferenceError(type_name, field_name, type_ref.name))
            continue

        fields.append(
            PropertyField(name=field_name, type=type_ref, source_property=field_name)
        )

    return NodeTypeDescriptor(
        name=type_name,
        identifier=identifier,
        fields=tuple(fields),
        relationships=tuple(relationships),
        identifier_directive_fields=tuple(directive_fields),
    )


def _build_relationship(
    type_name: str,
    field: FieldDefinitionNode,
    type_ref: TypeReference,
    node_names: Set[str],
    interface_names: Set[str],
    errors: List[SchemaBuildError],
) -> Optional[RelationshipFieldDescriptor]:
    field_name = field.name.value
    arguments = _directive_arguments(_directive(field, RELATIONSHIP_DIRECTIVE))

    relationship_type = arguments.get("type")
    if not isinstance(relationship_type, str) or not relationship_type:
        errors.append(
            InvalidDirectiveError(
                type_name, field_name, "@relationship requires a non-empty 'type'"
            )
        )
        return None

    direction = arguments.get("direction")
    try:
        direction = RelationshipDirection(direction)
    except ValueError:
        errors.append(
            InvalidDirectiveError(
                type_name,
                field_name,
                f"@relationship direction must be IN or OUT, got {direction!r}",
            )
        )
        return None

    failed = False
    if type_ref.name not in node_names:
        errors.append(SchemaReferenceError(type_name, field_name, type_ref.name))
        failed = True

    properties = arguments.get("properties")
    if properties is not None and properties not in interface_names:
        errors.append(SchemaReferenceError(type_name, field_name, properties))
        failed = True

    if failed:
        return None

    return RelationshipFieldDescriptor(
        name=field_name,
        type=type_ref,
        related_type=type_ref.name,
        direction=direction,
        relationship_type=relationship_type,
        properties=properties,
    )


def _build_properties(
    definition: InterfaceTypeDefinitionNode,
    leaf_names: Set[str],
    errors: List[SchemaBuildError],
) -> RelationshipPropertiesDescriptor:
    name = definition.name.value
    fields: List[PropertyField] = []
    directive_fields: List[str] = []
    for field in definition.fields or ():
        field_name = field.name.value
        type_ref = _field_type(name, field, errors)
        if type_ref is None:
            continue
        if _identifier_override(field) is not None:
            directive_fields.append(field_name)
        if type_ref.name not in leaf_names:
            errors.append(SchemaReferenceError(name, field_name, type_ref.name))
            continue
        fields.append(
            PropertyField(name=field_name, type=type_ref, source_property=field_name)
        )
    return RelationshipPropertiesDescriptor(
        name=name,
        fields=tuple(fields),
        identifier_directive_fields=tuple(directive_fields),
    )


def _field_type(
    type_name: str, field: FieldDefinitionNode, errors: List[SchemaBuildError]
) -> Optional[TypeReference]:
    try:
        return TypeReference.from_ast(field.type)
    except ValueError as e:
        errors.append(UnsupportedFieldTypeError(type_name, field.name.value, str(e)))
        return None


def _directive(node, name: str):
    for directive in node.directives or ():
        if directive.name.value == name:
            return directive
    return None


def _has_directive(node, name: str) -> bool:
    return _directive(node, name) is not None


def _directive_arguments(directive) -> Dict[str, object]:
    if directive is None:
        return {}
    return {
        argument.name.value: value_from_ast_untyped(argument.value)
        for argument in directive.arguments or ()
    }


def _identifier_override(field: FieldDefinitionNode) -> Optional[str]:
    """Property named by ``@identifier``; ``""`` when the directive has no argument."""
    directive = _directive(field, IDENTIFIER_DIRECTIVE)
    if directive is None:
        return None
    value = _directive_arguments(directive).get("property")
    return value if isinstance(value, str) else ""
