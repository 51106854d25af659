"""Build-time Exception Hierarchy.

Errors raised while turning a base schema into an augmented schema. They are
fatal: a schema that produces any of them is never served. The builder gathers
every violation from one pass and raises them together inside a
``SchemaValidationError`` so schema authors see all problems at once.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from relgraph.exceptions import RelGraphError


class SchemaBuildError(RelGraphError):
    """Base exception for schema building failures."""

    pass


class SchemaReferenceError(SchemaBuildError):
    """Raised when a field references an undeclared type or interface.

    Attributes:
        type_name: The type declaring the offending field
        field_name: The offending field
        reference: The name that could not be resolved
    """

    def __init__(
        self,
        type_name: str,
        field_name: str,
        reference: str,
        message: Optional[str] = None,
    ):
        self.type_name = type_name
        self.field_name = field_name
        self.reference = reference

        if message is None:
            message = (
                f"{type_name}.{field_name} references undeclared type '{reference}'"
            )

        super().__init__(message)


class InvalidIdentifierFieldError(SchemaBuildError):
    """Raised when a field named ``id`` is not typed ``ID!``.

    Attributes:
        type_name: The node type declaring the field
        declared_type: The SDL type the field was declared with
    """

    def __init__(self, type_name: str, declared_type: str):
        self.type_name = type_name
        self.declared_type = declared_type
        super().__init__(
            f"{type_name}.id must be of type ID!, found {declared_type}"
        )


class RelationshipPropertyMismatchError(SchemaBuildError):
    """Raised when both ends of a relationship disagree on its properties.

    Attributes:
        field: ``Type.field`` of the first end
        paired_field: ``Type.field`` of the other end
        differences: Human readable description of each difference
    """

    def __init__(
        self,
        field: str,
        paired_field: str,
        differences: Optional[Sequence[str]] = None,
    ):
        self.field = field
        self.paired_field = paired_field
        self.differences = list(differences or [])

        message = (
            f"Relationship properties of {field} and {paired_field} "
            f"are not structurally identical"
        )
        if self.differences:
            message = f"{message}: {'; '.join(self.differences)}"

        super().__init__(message)


class MisplacedIdentifierDirectiveError(SchemaBuildError):
    """Raised when ``@identifier`` is used anywhere but on a type's ``id`` field.

    Attributes:
        type_name: The type or interface declaring the directive
        field_name: The field carrying the directive
        reason: Why the placement is invalid
    """

    def __init__(self, type_name: str, field_name: str, reason: str):
        self.type_name = type_name
        self.field_name = field_name
        self.reason = reason
        super().__init__(
            f"@identifier on {type_name}.{field_name} is misplaced: {reason}"
        )


class TypeNameConflictError(SchemaBuildError):
    """Raised when a generated type name collides with another type.

    Attributes:
        type_name: The conflicting name
    """

    def __init__(self, type_name: str, message: Optional[str] = None):
        self.type_name = type_name
        if message is None:
            message = (
                f"Generated type '{type_name}' conflicts with an existing "
                f"definition of the same name"
            )
        super().__init__(message)


class SchemaValidationError(SchemaBuildError):
    """Raised once per build attempt carrying every violation found.

    Attributes:
        errors: All collected build errors, in discovery order
    """

    def __init__(self, errors: Sequence[SchemaBuildError]):
        self.errors: List[SchemaBuildError] = list(errors)
        lines = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(
            f"Schema build failed with {len(self.errors)} error(s):\n{lines}"
        )

    def of_type(self, error_type: type) -> List[SchemaBuildError]:
        """Return the collected errors that are instances of ``error_type``."""
        return [e for e in self.errors if isinstance(e, error_type)]


class InvalidDirectiveError(SchemaBuildError):
    """Raised when a schema directive is missing arguments or has bad values.

    Attributes:
        type_name: The type declaring the field
        field_name: The field carrying the directive
        reason: What is wrong with the directive
    """

    def __init__(self, type_name: str, field_name: str, reason: str):
        self.type_name = type_name
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid directive on {type_name}.{field_name}: {reason}")


class UnsupportedFieldTypeError(SchemaBuildError):
    """Raised when a field is declared with a type shape that cannot be mapped.

    Attributes:
        type_name: The type or interface declaring the field
        field_name: The offending field
        reason: Why the type is not supported
    """

    def __init__(self, type_name: str, field_name: str, reason: str):
        self.type_name = type_name
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Unsupported type on {type_name}.{field_name}: {reason}")
