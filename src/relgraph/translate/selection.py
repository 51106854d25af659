"""Selection IR.

Intermediate representation of a request, built from the GraphQL operation
before any Cypher is emitted. Every node is keyed by its response alias so the
compiled projection and the post-processed response share the same keys.

Read side:
- ``NodeSelection``: the fields requested on one node type
- ``RelationshipSelection``: a list/single shaped relationship field
- ``ConnectionSelection``: a paginated ``<field>Connection`` field, with its
  ``EdgesSelection`` and ``PageInfoSelection`` children

Root fields:
- ``ListRead`` (``movies(where)``), ``NodeLookup`` (``node(id)``),
  ``CreateMutation``, ``UpdateMutation`` and ``TypenameField``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

TYPENAME = "__typename"


@dataclass(frozen=True)
class FieldSelection:
    """A leaf field: scalar property, ``id``, ``cursor`` or ``__typename``."""

    alias: str
    name: str


@dataclass(frozen=True)
class NodeSelection:
    type_name: str
    fields: Tuple["NodeField", ...] = ()


@dataclass(frozen=True)
class RelationshipSelection:
    """An unpaginated relationship field (``Movie.actors``)."""

    alias: str
    name: str
    node: NodeSelection


@dataclass(frozen=True)
class EdgeNodeSelection:
    """The ``node`` field of an edge."""

    alias: str
    node: NodeSelection


@dataclass(frozen=True)
class EdgesSelection:
    alias: str
    fields: Tuple[Union[FieldSelection, EdgeNodeSelection], ...] = ()


@dataclass(frozen=True)
class PageInfoSelection:
    alias: str
    fields: Tuple[FieldSelection, ...] = ()


@dataclass(frozen=True)
class ConnectionSelection:
    """A paginated connection field (``Movie.actorsConnection``).

    Attributes:
        alias: Response key
        name: Name of the underlying relationship field (``actors``)
        first: Page size; ``None`` requests every remaining edge
        after: Cursor to resume after
        fields: ``edges``, ``pageInfo`` and ``__typename`` selections
    """

    alias: str
    name: str
    first: Optional[int] = None
    after: Optional[str] = None
    fields: Tuple[Union[FieldSelection, EdgesSelection, PageInfoSelection], ...] = ()


NodeField = Union[FieldSelection, RelationshipSelection, ConnectionSelection]


@dataclass(frozen=True)
class NodeListSelection:
    """The node list of a mutation response (``createMovies { movies }``)."""

    alias: str
    node: NodeSelection


@dataclass(frozen=True)
class ResponseSelection:
    """Selection on a ``Create/Update<Plural>MutationResponse``."""

    type_name: str
    fields: Tuple[Union[FieldSelection, NodeListSelection], ...] = ()


# ---------------------------------------------------------------------------
# Root fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ListRead:
    alias: str
    type_name: str
    selection: NodeSelection
    where: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NodeLookup:
    """``node(id)``: one selection variant per node type."""

    alias: str
    id: str
    variants: Tuple[NodeSelection, ...] = ()

    def variant(self, type_name: str) -> Optional[NodeSelection]:
        for candidate in self.variants:
            if candidate.type_name == type_name:
                return candidate
        return None


@dataclass(frozen=True)
class CreateMutation:
    alias: str
    type_name: str
    inputs: Tuple[Dict[str, Any], ...]
    response: ResponseSelection


@dataclass(frozen=True)
class UpdateMutation:
    alias: str
    type_name: str
    response: ResponseSelection
    where: Dict[str, Any] = field(default_factory=dict)
    update: Dict[str, Any] = field(default_factory=dict)
    update_connection: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TypenameField:
    """Root level ``__typename``; answered without touching the database."""

    alias: str
    type_name: str


RootField = Union[ListRead, NodeLookup, CreateMutation, UpdateMutation, TypenameField]


@dataclass(frozen=True)
class Operation:
    """A parsed operation: its kind and its root fields in response order."""

    kind: str
    fields: Tuple[RootField, ...] = ()

    @property
    def is_mutation(self) -> bool:
        return self.kind == "mutation"
