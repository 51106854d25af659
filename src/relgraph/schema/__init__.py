"""relgraph Schema Module.

Turns a declarative base schema (node types, ``@relationship`` fields and
relationship-properties interfaces) into:
- an immutable Type Descriptor Model (``descriptors``)
- a list of directive-consistency violations (``validator``)
- an augmented, query-facing schema with Relay connections (``augmenter``)
- the database constraints the served schema relies on (``constraints``)
"""

from relgraph.schema.augmenter import (
    AugmentedSchema,
    FieldDefinition,
    SchemaAugmenter,
    TypeDefinition,
    augment_schema,
)
from relgraph.schema.constraints import (
    constraint_definitions,
    index_definitions,
    init_constraints,
)
from relgraph.schema.descriptors import (
    DescriptorSet,
    IdentifierDescriptor,
    NodeTypeDescriptor,
    PropertyField,
    RelationshipDirection,
    RelationshipFieldDescriptor,
    RelationshipPropertiesDescriptor,
    TypeReference,
    build_descriptors,
)
from relgraph.schema.exceptions import (
    InvalidDirectiveError,
    InvalidIdentifierFieldError,
    MisplacedIdentifierDirectiveError,
    RelationshipPropertyMismatchError,
    SchemaBuildError,
    SchemaReferenceError,
    SchemaValidationError,
    TypeNameConflictError,
    UnsupportedFieldTypeError,
)
from relgraph.schema.validator import validate_descriptors

__all__ = [
    # Descriptors
    "DescriptorSet",
    "IdentifierDescriptor",
    "NodeTypeDescriptor",
    "PropertyField",
    "RelationshipDirection",
    "RelationshipFieldDescriptor",
    "RelationshipPropertiesDescriptor",
    "TypeReference",
    "build_descriptors",
    # Validation
    "validate_descriptors",
    # Augmentation
    "AugmentedSchema",
    "FieldDefinition",
    "SchemaAugmenter",
    "TypeDefinition",
    "augment_schema",
    # Constraints
    "constraint_definitions",
    "index_definitions",
    "init_constraints",
    # Exceptions
    "InvalidDirectiveError",
    "InvalidIdentifierFieldError",
    "MisplacedIdentifierDirectiveError",
    "RelationshipPropertyMismatchError",
    "SchemaBuildError",
    "SchemaReferenceError",
    "SchemaValidationError",
    "TypeNameConflictError",
    "UnsupportedFieldTypeError",
]
