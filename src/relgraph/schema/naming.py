"""Naming rules for generated types, fields and Cypher variables."""

from __future__ import annotations

import re

_SIMPLE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_VOWELS = "aeiou"


def upper_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def lower_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def pluralize(name: str) -> str:
    """Pluralize a type name using regular English suffix rules.

    Example:
        >>> pluralize("Movie"), pluralize("Category"), pluralize("Address")
        ('Movies', 'Categories', 'Addresses')
    """
    lower = name.lower()
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in _VOWELS:
        return name[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


def plural_field_name(type_name: str) -> str:
    """Root field name for a node type, e.g. ``Movie`` -> ``movies``."""
    return lower_first(pluralize(type_name))


def connection_type_name(type_name: str, field_name: str) -> str:
    return f"{type_name}{upper_first(field_name)}Connection"


def edge_type_name(type_name: str, field_name: str) -> str:
    return f"{type_name}{upper_first(field_name)}Relationship"


def relationship_input_name(type_name: str, field_name: str, suffix: str) -> str:
    """Name of a per-relationship input, e.g. ``MovieActorsCreateFieldInput``."""
    return f"{type_name}{upper_first(field_name)}{suffix}"


def is_simple_identifier(name: str) -> bool:
    return bool(_SIMPLE_IDENTIFIER.match(name))


def escape(name: str) -> str:
    """Quote a label, relationship type or property name for Cypher."""
    return "`" + name.replace("`", "``") + "`"
