"""Cypher emission helpers.

``CypherContext`` owns the parameter map, the variable counter and the
match-reporting entry paths of one compiled statement; every value reaches Cypher as a bound parameter, and every
label, relationship type and property name goes through ``escape``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from relgraph.schema.descriptors import (
    NodeTypeDescriptor,
    RelationshipDirection,
    RelationshipFieldDescriptor,
)
from relgraph.schema.naming import escape
from relgraph.settings import RelGraphSettings
from relgraph.translate.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

INDENT = "    "


class CypherContext:
    """Parameter and variable bookkeeping for one statement.

    Example:
        >>> ctx = CypherContext(RelGraphSettings())
        >>> ctx.param("Alice", "name")
        '$name_1'
        >>> ctx.variable("this")
        'this_2'
    """

    def __init__(self, settings: RelGraphSettings):
        self.settings = settings
        self.params: Dict[str, Any] = {}
        self.match_paths: List[str] = []
        self._counter: int = 0

    def _next_name(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def param(self, value: Any, prefix: str = "param") -> str:
        """Bind a value and return its ``$name`` reference."""
        name = self._next_name(prefix)
        self.params[name] = value
        return f"${name}"

    def variable(self, prefix: str = "this") -> str:
        return self._next_name(prefix)

    @property
    def sequence_property(self) -> str:
        return escape(self.settings.sequence_property)

    @property
    def sequence_label(self) -> str:
        return escape(self.settings.sequence_label)


def node_pattern(variable: str, label: Optional[str] = None) -> str:
    if label is None:
        return f"({variable})"
    return f"({variable}:{escape(label)})"


def relationship_pattern(
    source: str,
    relationship: RelationshipFieldDescriptor,
    target: str,
    rel_variable: str = "",
    target_label: Optional[str] = None,
) -> str:
    """Pattern from a declaring node to its related node.

    Example:
        >>> relationship_pattern("this", actors, "a", "r", "Actor")
        '(this)<-[r:`ACTED_IN`]-(a:`Actor`)'
    """
    rel = f"[{rel_variable}:{escape(relationship.relationship_type)}]"
    target_part = node_pattern(target, target_label)
    if relationship.direction is RelationshipDirection.OUT:
        return f"({source})-{rel}->{target_part}"
    return f"({source})<-{rel}-{target_part}"


def where_predicates(
    ctx: CypherContext,
    variable: str,
    node: NodeTypeDescriptor,
    where: Optional[Dict[str, Any]],
    path: str,
) -> List[str]:
    """Equality predicates for a ``<T>Where`` input.

    ``null`` matches nodes without the property.

    Raises:
        InvalidInputError: If the input names an unknown or non-filterable field
    """
    predicates: List[str] = []
    for name, value in (where or {}).items():
        property_field = node.field(name)
        if property_field is None or property_field.type.is_list:
            raise InvalidInputError(f"'{name}' is not a filter of {node.name}", path)
        target = f"{variable}.{escape(property_field.source_property)}"
        if value is None:
            predicates.append(f"{target} IS NULL")
        else:
            predicates.append(f"{target} = {ctx.param(value, name)}")
    return predicates


def where_clause(predicates: Iterable[str]) -> Optional[str]:
    predicates = list(predicates)
    if not predicates:
        return None
    return "WHERE " + " AND ".join(predicates)


def map_literal(entries: Iterable[tuple]) -> str:
    """Render ``(key, expression)`` pairs as a Cypher map literal."""
    body = ", ".join(f"{escape(key)}: {expression}" for key, expression in entries)
    return "{" + body + "}"


def string_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def subquery(imports: Iterable[str], body: Iterable[str]) -> List[str]:
    """Wrap lines in ``CALL { WITH ... }``."""
    imports = list(imports)
    lines = ["CALL {"]
    if imports:
        lines.append(f"{INDENT}WITH {', '.join(imports)}")
    lines.extend(f"{INDENT}{line}" for line in body)
    lines.append("}")
    return lines


def sequence_subquery(
    ctx: CypherContext, relationship: RelationshipFieldDescriptor
) -> tuple:
    """Draw the next creation-order value for a relationship type.

    The counter node is merged on its unique ``name`` and incremented in place,
    which write-locks it until the transaction ends, so concurrent writers
    receive distinct, increasing values.

    Returns:
        Tuple of (Cypher lines, variable holding the drawn value)
    """
    counter = ctx.variable("sequence")
    value = ctx.variable("seq")
    name = ctx.param(relationship.relationship_type, "sequence_name")
    lines = subquery(
        [],
        [
            f"MERGE ({counter}:{ctx.sequence_label} {{name: {name}}})",
            f"ON CREATE SET {counter}.value = 0",
            f"SET {counter}.value = {counter}.value + 1",
            f"RETURN {counter}.value AS {value}",
        ],
    )
    return lines, value
