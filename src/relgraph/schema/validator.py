"""Schema Validator.

Directive-consistency checks run over a freshly built ``DescriptorSet`` before
augmentation. Every rule is evaluated for every node type and relationship
pair; violations are gathered and returned together rather than stopping at
the first one.

Rules:
- A field named ``id`` must be typed ``ID!`` (``InvalidIdentifierFieldError``)
- Both ends of a relationship must reference structurally identical
  properties (``RelationshipPropertyMismatchError``)
- ``@identifier`` may only target the ``id`` field of a node type
  (``MisplacedIdentifierDirectiveError``)

Equivalence of paired properties is checked here once and never re-checked by
the augmenter or the translator.
"""

from __future__ import annotations

import logging
from typing import List

from relgraph.schema.descriptors import (
    IDENTIFIER_FIELD,
    DescriptorSet,
    NodeTypeDescriptor,
    TypeReference,
)
from relgraph.schema.exceptions import (
    InvalidIdentifierFieldError,
    MisplacedIdentifierDirectiveError,
    RelationshipPropertyMismatchError,
    SchemaBuildError,
)

logger = logging.getLogger(__name__)

NON_NULL_ID = TypeReference(name="ID", non_null=True)


def validate_descriptors(descriptors: DescriptorSet) -> List[SchemaBuildError]:
    """Run every validation rule and return all violations found.

    Args:
        descriptors: The descriptor set to check

    Returns:
        List of violations, empty when the schema is consistent
    """
    errors: List[SchemaBuildError] = []

    for node in descriptors.nodes:
        errors.extend(_check_identifier_type(node))
        errors.extend(_check_identifier_directives(node))

    for properties in descriptors.properties:
        for field_name in properties.identifier_directive_fields:
            errors.append(
                MisplacedIdentifierDirectiveError(
                    properties.name,
                    field_name,
                    "relationship properties have no identifier",
                )
            )

    errors.extend(_check_relationship_pairs(descriptors))

    if errors:
        logger.info(f"Schema validation found {len(errors)} violation(s)")
    return errors


def _check_identifier_type(node: NodeTypeDescriptor) -> List[SchemaBuildError]:
    declared = node.identifier.declared_type
    if declared is None or declared == NON_NULL_ID:
        return []
    return [InvalidIdentifierFieldError(node.name, declared.to_sdl())]


def _check_identifier_directives(node: NodeTypeDescriptor) -> List[SchemaBuildError]:
    errors: List[SchemaBuildError] = []
    for field_name in node.identifier_directive_fields:
        if field_name != IDENTIFIER_FIELD:
            errors.append(
                MisplacedIdentifierDirectiveError(
                    node.name,
                    field_name,
                    f"only the '{IDENTIFIER_FIELD}' field serves as identifier",
                )
            )
    return errors


def _check_relationship_pairs(descriptors: DescriptorSet) -> List[SchemaBuildError]:
    errors: List[SchemaBuildError] = []
    for (type_a, field_a), (type_b, field_b) in descriptors.relationship_pairs():
        end_a = descriptors.relationship(type_a, field_a)
        end_b = descriptors.relationship(type_b, field_b)
        props_a = descriptors.properties_of(end_a)
        props_b = descriptors.properties_of(end_b)

        if props_a is None and props_b is None:
            continue

        if props_a is None or props_b is None:
            declaring = props_a or props_b
            errors.append(
                RelationshipPropertyMismatchError(
                    f"{type_a}.{field_a}",
                    f"{type_b}.{field_b}",
                    [f"only one end declares properties '{declaring.name}'"],
                )
            )
            continue

        if not props_a.is_structurally_identical(props_b):
            errors.append(
                RelationshipPropertyMismatchError(
                    f"{type_a}.{field_a}",
                    f"{type_b}.{field_b}",
                    props_a.structural_differences(props_b),
                )
            )
    return errors
