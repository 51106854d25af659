"""Database Constraints and Indices.

Derives the Neo4j constraints and indices a served schema relies on:
- Unique identifier per node type (``node(id)`` and ``where: {id}`` lookups)
- Unique name on the relationship sequence counter node, so concurrent
  ``MERGE`` calls never create two counters
- A range index on the sequence property of every relationship type, which
  backs cursor seeks

All statements use ``IF NOT EXISTS`` and are idempotent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from relgraph.schema.descriptors import DescriptorSet
from relgraph.schema.naming import escape

if TYPE_CHECKING:
    from neo4j import Driver

    from relgraph.settings import RelGraphSettings

logger = logging.getLogger(__name__)


def constraint_definitions(
    descriptors: DescriptorSet, settings: "RelGraphSettings"
) -> List[str]:
    """Constraint statements for a descriptor set.

    Example:
        >>> constraint_definitions(descriptors, RelGraphSettings())[0]
        'CREATE CONSTRAINT movie_id_unique IF NOT EXISTS FOR (n:`Movie`) REQUIRE n.`id` IS UNIQUE'
    """
    used: Set[str] = set()
    statements = [
        f"CREATE CONSTRAINT {_name(node.name, node.identifier.source_property, 'unique', used)} "
        f"IF NOT EXISTS FOR (n:{escape(node.name)}) "
        f"REQUIRE n.{escape(node.identifier.source_property)} IS UNIQUE"
        for node in descriptors.nodes
    ]
    statements.append(
        f"CREATE CONSTRAINT {_name(settings.sequence_label, 'name', 'unique', used)} "
        f"IF NOT EXISTS FOR (s:{escape(settings.sequence_label)}) "
        f"REQUIRE s.name IS UNIQUE"
    )
    return statements


def index_definitions(
    descriptors: DescriptorSet, settings: "RelGraphSettings"
) -> List[str]:
    """Sequence index statements, one per relationship type label."""
    relationship_types: List[str] = []
    for node in descriptors.nodes:
        for relationship in node.relationships:
            if relationship.relationship_type not in relationship_types:
                relationship_types.append(relationship.relationship_type)

    used: Set[str] = set()
    return [
        f"CREATE INDEX {_name(rel_type, settings.sequence_property, 'index', used)} "
        f"IF NOT EXISTS FOR ()-[r:{escape(rel_type)}]-() "
        f"ON (r.{escape(settings.sequence_property)})"
        for rel_type in relationship_types
    ]


def init_constraints(
    driver: "Driver",
    descriptors: DescriptorSet,
    settings: "RelGraphSettings",
    database: Optional[str] = None,
    skip_on_error: bool = False,
) -> Dict[str, bool]:
    """Create every constraint and index for a descriptor set.

    Args:
        driver: Neo4j driver instance
        descriptors: Descriptors of the served schema
        settings: Feature settings (sequence label and property)
        database: Optional database name (None for default)
        skip_on_error: If True, continue on individual errors

    Returns:
        Dictionary mapping constraint/index names to success status
    """
    results: Dict[str, bool] = {}
    statements = constraint_definitions(descriptors, settings) + index_definitions(
        descriptors, settings
    )

    with driver.session(database=database) as session:
        for statement in statements:
            name = _extract_name(statement)
            try:
                session.run(statement).consume()
                results[name] = True
                logger.debug(f"Created {name}")
            except Exception as e:
                results[name] = False
                logger.warning(f"Failed to create {name}: {e}")
                if not skip_on_error:
                    raise

    logger.info(
        f"Constraint initialization complete: "
        f"{sum(results.values())}/{len(results)} successful"
    )
    return results


def _name(label: str, prop: str, suffix: str, used: Set[str]) -> str:
    """Lowercased constraint or index name, numbered when already taken.

    Example:
        >>> used = set()
        >>> _name("Movie", "id", "unique", used), _name("movie", "id", "unique", used)
        ('movie_id_unique', 'movie_id_unique_2')
    """
    cleaned = "".join(c if c.isalnum() else "_" for c in f"{label}_{prop}")
    base = f"{cleaned.strip('_').lower()}_{suffix}"
    name = base
    counter = 2
    while name in used:
        name = f"{base}_{counter}"
        counter += 1
    used.add(name)
    return name


def _extract_name(statement: str) -> str:
    """Extract the constraint/index name from a CREATE statement.

    Example:
        >>> _extract_name("CREATE INDEX acted_in_seq_index IF NOT EXISTS FOR ...")
        'acted_in_seq_index'
    """
    parts = statement.split()
    if len(parts) >= 3 and parts[0] == "CREATE" and parts[1] in ("CONSTRAINT", "INDEX"):
        return parts[2]
    raise ValueError(f"Could not extract name from: {statement}")
