"""Read compilation.

Compiles a selection tree into one Cypher statement. Every nested relationship
or connection field becomes a correlated ``CALL {}`` subquery returning a
single collected value, so arbitrarily nested selections stay one statement
and one round trip.

A connection subquery:
- matches the sequenced relationships of the parent node
- keeps only ordering keys greater than the decoded ``after`` position
- orders by the ordering key and fetches ``first + 1`` rows
- projects ``__seq``, the selected relationship properties and node fields

``hasPreviousPage`` needs one more subquery counting edges at or before the
``after`` position; it is only emitted when ``after`` is given.

Example:
    >>> compiler = ReadCompiler(descriptors, settings, codec)
    >>> statement = compiler.compile_list(read)
    >>> print(statement.cypher)
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from relgraph.pagination import CursorCodec
from relgraph.schema.descriptors import DescriptorSet, NodeTypeDescriptor
from relgraph.schema.naming import escape
from relgraph.settings import RelGraphSettings
from relgraph.translate.cypher import (
    CypherContext,
    map_literal,
    node_pattern,
    relationship_pattern,
    string_literal,
    subquery,
    where_clause,
    where_predicates,
)
from relgraph.translate.exceptions import InvalidInputError, QueryBuildError
from relgraph.translate.results import (
    EDGES_KEY,
    HAS_PREVIOUS_KEY,
    RESOLVED_TYPE_KEY,
    SEQUENCE_KEY,
    CURSOR_FIELD,
    ResultShaper,
)
from relgraph.translate.selection import (
    TYPENAME,
    ConnectionSelection,
    EdgeNodeSelection,
    EdgesSelection,
    FieldSelection,
    ListRead,
    NodeListSelection,
    NodeLookup,
    NodeSelection,
    RelationshipSelection,
    ResponseSelection,
)
from relgraph.translate.statement import CompiledStatement

logger = logging.getLogger(__name__)

ROOT = "this"


class SelectionProjector:
    """Emits subqueries and map projections for one statement.

    Args:
        ctx: Context of the statement being compiled
        descriptors: Served descriptor set
        codec: Codec used to decode ``after`` cursors
    """

    def __init__(
        self,
        ctx: CypherContext,
        descriptors: DescriptorSet,
        codec: CursorCodec,
    ):
        self._ctx = ctx
        self._descriptors = descriptors
        self._codec = codec

    def project(
        self,
        variable: str,
        node: NodeTypeDescriptor,
        selection: NodeSelection,
        extra: Sequence[Tuple[str, str]] = (),
    ) -> Tuple[List[str], str]:
        """Project a node selection.

        Args:
            variable: Cypher variable bound to the node
            node: Descriptor of the node's type
            selection: Requested fields
            extra: Additional ``(key, expression)`` map entries

        Returns:
            Tuple of (subquery lines to emit first, map projection expression)
        """
        subqueries: List[str] = []
        entries: List[Tuple[str, str]] = list(extra)

        for field in selection.fields:
            if isinstance(field, FieldSelection):
                if field.name == TYPENAME:
                    continue
                property_field = node.field(field.name)
                if property_field is None:
                    raise QueryBuildError(
                        f"{node.name} has no field '{field.name}'", field.alias
                    )
                entries.append(
                    (field.alias, f"{variable}.{escape(property_field.source_property)}")
                )
            elif isinstance(field, RelationshipSelection):
                lines, result = self._relationship(variable, node, field)
                subqueries.extend(lines)
                entries.append((field.alias, result))
            elif isinstance(field, ConnectionSelection):
                lines, result = self._connection(variable, node, field)
                subqueries.extend(lines)
                entries.append((field.alias, result))

        return subqueries, map_literal(entries)

    def project_response(
        self, variable: str, node: NodeTypeDescriptor, selection: ResponseSelection
    ) -> Tuple[List[str], str]:
        """Project every node list of a mutation response."""
        subqueries: List[str] = []
        entries: List[Tuple[str, str]] = []
        for field in selection.fields:
            if isinstance(field, NodeListSelection):
                lines, projection = self.project(variable, node, field.node)
                subqueries.extend(lines)
                entries.append((field.alias, projection))
        return subqueries, map_literal(entries)

    # ---------------------------------------------------------------------------
    # Relationship fields
    # ---------------------------------------------------------------------------

    def _relationship_of(self, node: NodeTypeDescriptor, name: str):
        relationship = node.relationship(name)
        if relationship is None:
            raise QueryBuildError(f"{node.name} has no relationship field '{name}'")
        return relationship, self._descriptors.related(relationship)

    def _relationship(
        self, variable: str, node: NodeTypeDescriptor, field: RelationshipSelection
    ) -> Tuple[List[str], str]:
        relationship, related = self._relationship_of(node, field.name)
        target = self._ctx.variable(relationship.name)
        result = self._ctx.variable("var")

        nested, projection = self.project(target, related, field.node)
        collected = f"collect({projection})"
        if not relationship.type.is_list:
            collected = f"head({collected})"

        body = [f"MATCH {relationship_pattern(variable, relationship, target, target_label=related.name)}"]
        body.extend(nested)
        body.append(f"RETURN {collected} AS {result}")
        return subquery([variable], body), result

    def _connection(
        self, variable: str, node: NodeTypeDescriptor, field: ConnectionSelection
    ) -> Tuple[List[str], str]:
        ctx = self._ctx
        if not ctx.settings.relationship_properties_enabled:
            raise InvalidInputError(
                "connection fields are not available", f"{node.name}.{field.alias}"
            )

        relationship, related = self._relationship_of(node, field.name)
        properties = self._descriptors.properties_of(relationship)
        discriminator = f"{node.name}.{relationship.name}"
        first = self._page_size(field.first, discriminator)

        after: Optional[str] = None
        if field.after is not None:
            position = self._codec.decode(field.after, discriminator)
            after = ctx.param(position.ordering_key, "after")

        edge = ctx.variable("edge")
        target = ctx.variable(relationship.name)
        edges = ctx.variable("edges")
        ordering_key = f"{edge}.{ctx.sequence_property}"

        predicates = [f"{ordering_key} IS NOT NULL"]
        if after is not None:
            predicates.append(f"{ordering_key} > {after}")

        body = [
            f"MATCH {relationship_pattern(variable, relationship, target, edge, related.name)}",
            where_clause(predicates),
            f"WITH {edge}, {target}",
            f"ORDER BY {ordering_key} ASC",
        ]
        if first is not None:
            body.append(f"LIMIT {ctx.param(first + 1, 'limit')}")

        edge_entries: List[Tuple[str, str]] = [(SEQUENCE_KEY, ordering_key)]
        for selection in field.fields:
            if not isinstance(selection, EdgesSelection):
                continue
            entries: List[Tuple[str, str]] = []
            for edge_field in selection.fields:
                if isinstance(edge_field, EdgeNodeSelection):
                    nested, projection = self.project(target, related, edge_field.node)
                    body.extend(nested)
                    entries.append((edge_field.alias, projection))
                elif edge_field.name in (CURSOR_FIELD, TYPENAME):
                    continue
                else:
                    property_field = properties.field(edge_field.name) if properties else None
                    if property_field is None:
                        raise QueryBuildError(
                            f"{discriminator} edges have no property '{edge_field.name}'",
                            edge_field.alias,
                        )
                    entries.append(
                        (edge_field.alias, f"{edge}.{escape(property_field.source_property)}")
                    )
            edge_entries.append((selection.alias, map_literal(entries)))

        body.append(f"RETURN collect({map_literal(edge_entries)}) AS {edges}")
        lines = subquery([variable], body)

        has_previous = "false"
        if after is not None:
            previous_edge = ctx.variable("edge")
            has_previous = ctx.variable("previous")
            lines.extend(
                subquery(
                    [variable],
                    [
                        f"OPTIONAL MATCH {relationship_pattern(variable, relationship, '', previous_edge, related.name)}",
                        f"WHERE {previous_edge}.{ctx.sequence_property} <= {after}",
                        f"RETURN count({previous_edge}) > 0 AS {has_previous}",
                    ],
                )
            )

        return lines, map_literal([(EDGES_KEY, edges), (HAS_PREVIOUS_KEY, has_previous)])

    def _page_size(self, first: Optional[int], discriminator: str) -> Optional[int]:
        if first is None:
            return None
        if first < 0:
            raise InvalidInputError(f"'first' must not be negative, got {first}", discriminator)
        maximum = self._ctx.settings.max_page_size
        if maximum is not None and first > maximum:
            raise InvalidInputError(
                f"'first' must not exceed {maximum}, got {first}", discriminator
            )
        return first


class ReadCompiler:
    """Compiles root read fields (``<plural>(where)`` and ``node(id)``)."""

    def __init__(
        self,
        descriptors: DescriptorSet,
        settings: RelGraphSettings,
        codec: CursorCodec,
    ):
        self._descriptors = descriptors
        self._settings = settings
        self._codec = codec
        self._shaper = ResultShaper(codec)

    def compile_list(self, read: ListRead) -> CompiledStatement:
        ctx = CypherContext(self._settings)
        node = self._descriptors.node(read.type_name)
        projector = SelectionProjector(ctx, self._descriptors, self._codec)

        lines = [f"MATCH {node_pattern(ROOT, node.name)}"]
        clause = where_clause(where_predicates(ctx, ROOT, node, read.where, read.alias))
        if clause:
            lines.append(clause)
        nested, projection = projector.project(ROOT, node, read.selection)
        lines.extend(nested)
        lines.append(f"RETURN {projection} AS {ROOT}")

        selection = read.selection
        shaper = self._shaper
        return CompiledStatement(
            cypher="\n".join(lines),
            params=ctx.params,
            shape=lambda rows: [shaper.node(row[ROOT], selection) for row in rows],
        )

    def compile_node(self, lookup: NodeLookup) -> CompiledStatement:
        """Compile ``node(id)`` as a ``UNION`` over the node-type variants.

        Each branch projects the name of its type so the matched variant can
        be shaped with its own selection.
        """
        if not self._settings.relationship_properties_enabled:
            raise InvalidInputError("node lookup is not available", lookup.alias)
        if not lookup.variants:
            raise QueryBuildError("no node types to resolve", lookup.alias)

        ctx = CypherContext(self._settings)
        projector = SelectionProjector(ctx, self._descriptors, self._codec)
        identifier = ctx.param(lookup.id, "id")

        branches: List[str] = []
        for variant in lookup.variants:
            node = self._descriptors.node(variant.type_name)
            if branches:
                branches.append("UNION")
            branches.append(f"MATCH {node_pattern(ROOT, node.name)}")
            branches.append(
                f"WHERE {ROOT}.{escape(node.identifier.source_property)} = {identifier}"
            )
            nested, projection = projector.project(
                ROOT, node, variant, extra=[(RESOLVED_TYPE_KEY, string_literal(node.name))]
            )
            branches.extend(nested)
            branches.append(f"RETURN {projection} AS {ROOT}")

        lines = subquery([], branches)
        lines.append(f"RETURN {ROOT}")
        lines.append("LIMIT 1")

        shaper = self._shaper

        def shape(rows):
            if not rows:
                return None
            raw = rows[0][ROOT]
            return shaper.node(raw, lookup.variant(raw[RESOLVED_TYPE_KEY]))

        return CompiledStatement(cypher="\n".join(lines), params=ctx.params, shape=shape)
