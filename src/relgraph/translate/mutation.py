"""Mutation compilation.

Compiles ``create<Plural>`` and ``update<Plural>`` root fields, including any
depth of nested ``create``/``connect`` and the ``updateConnection`` argument,
into one Cypher statement. The statement runs inside one write transaction,
so a multi-entity mutation is applied completely or not at all.

Every input is checked while compiling, before any statement exists:
- unknown fields raise ``InvalidInputError``
- a nested create or connect missing a required relationship property raises
  ``MissingRequiredPropertyError``
- nulling a required property raises ``InvalidInputError``

Each relationship created here receives the next value of its type's
sequence counter, which is the ordering key connections page over.

``connect`` and ``updateConnection`` entries report how many matches they
found as ``{path, matched}`` records in the ``matches`` column; entries that
matched nothing become ``NotFoundError``s after execution, or abort the
transaction when matches are required.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from relgraph.pagination import CursorCodec
from relgraph.schema.descriptors import (
    DescriptorSet,
    NodeTypeDescriptor,
    RelationshipFieldDescriptor,
)
from relgraph.schema.naming import escape
from relgraph.settings import RelGraphSettings
from relgraph.translate.cypher import (
    CypherContext,
    node_pattern,
    relationship_pattern,
    sequence_subquery,
    subquery,
    where_clause,
    where_predicates,
)
from relgraph.translate.exceptions import (
    InvalidInputError,
    MissingRequiredPropertyError,
)
from relgraph.translate.read import SelectionProjector
from relgraph.translate.results import ResultShaper
from relgraph.translate.selection import CreateMutation, UpdateMutation
from relgraph.translate.statement import CompiledStatement

logger = logging.getLogger(__name__)

ROOT = "this"
FIELD_INPUT_KEYS = ("create", "connect")


def _concat(variables: List[str]) -> str:
    if not variables:
        return "[]"
    return " + ".join(variables)


class MutationCompiler:
    """Compiles create and update mutations.

    Args:
        descriptors: Served descriptor set
        settings: Feature settings
        codec: Codec for cursors in the response selection
    """

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

    # ---------------------------------------------------------------------------
    # Root fields
    # ---------------------------------------------------------------------------

    def compile_create(self, mutation: CreateMutation) -> CompiledStatement:
        ctx = CypherContext(self._settings)
        node = self._descriptors.node(mutation.type_name)

        lines: List[str] = []
        created: List[str] = []
        reports: List[str] = []
        for index, data in enumerate(mutation.inputs):
            variable = f"{ROOT}{index}"
            body, matches = self._create_node(
                ctx, variable, node, data, f"{mutation.alias}[{index}]", carry=[]
            )
            body.append(f"RETURN {variable}, {_concat(matches)} AS {variable}_matches")
            lines.extend(subquery([], body))
            created.append(variable)
            reports.append(f"{variable}_matches")

        lines.append(f"WITH [{', '.join(created)}] AS created, {_concat(reports)} AS matches")
        lines.append("UNWIND range(0, size(created) - 1) AS position")
        lines.append(f"WITH created[position] AS {ROOT}, position, matches")
        return self._finish(ctx, node, mutation.response, lines, "data, position, matches")

    def compile_update(self, mutation: UpdateMutation) -> CompiledStatement:
        ctx = CypherContext(self._settings)
        node = self._descriptors.node(mutation.type_name)
        path = mutation.alias

        lines = [f"MATCH {node_pattern(ROOT, node.name)}"]
        clause = where_clause(where_predicates(ctx, ROOT, node, mutation.where, path))
        if clause:
            lines.append(clause)

        update = mutation.update or {}
        self._check_node_input(node, update, path, creating=False)
        assignments = self._property_assignments(ctx, ROOT, node, update)
        if assignments:
            lines.append("SET " + ", ".join(assignments))
        lines.append(f"WITH {ROOT}")

        nested, matches = self._relationship_inputs(ctx, ROOT, node, update, path)
        lines.extend(nested)

        for field_name, entries in (mutation.update_connection or {}).items():
            relationship = self._connection_relationship(node, field_name, path)
            for index, entry in enumerate(entries or ()):
                body, report = self._update_connection(
                    ctx,
                    ROOT,
                    relationship,
                    entry,
                    f"{path}.{field_name}.updateConnection[{index}]",
                )
                lines.extend(body)
                matches.append(report)

        lines.append(f"WITH {ROOT}, {_concat(matches)} AS matches")
        return self._finish(ctx, node, mutation.response, lines, "data, matches")

    def _finish(
        self,
        ctx: CypherContext,
        node: NodeTypeDescriptor,
        response,
        lines: List[str],
        columns: str,
    ) -> CompiledStatement:
        projector = SelectionProjector(ctx, self._descriptors, self._codec)
        nested, projection = projector.project_response(ROOT, node, response)
        lines.extend(nested)
        lines.append(f"RETURN {projection} AS {columns}")

        shaper = self._shaper
        return CompiledStatement(
            cypher="\n".join(lines),
            params=ctx.params,
            write=True,
            shape=lambda rows: shaper.response(rows, response),
            require_match=self._settings.require_connect_match,
            match_paths=tuple(ctx.match_paths),
        )

    # ---------------------------------------------------------------------------
    # Nodes
    # ---------------------------------------------------------------------------

    def _create_node(
        self,
        ctx: CypherContext,
        variable: str,
        node: NodeTypeDescriptor,
        data: Dict[str, Any],
        path: str,
        carry: List[str],
    ) -> Tuple[List[str], List[str]]:
        """Create one node and everything nested under it.

        Returns:
            Tuple of (Cypher lines, variables holding match reports)
        """
        self._check_node_input(node, data, path, creating=True)

        identifier = data.get(node.identifier.field_name)
        id_value = ctx.param(identifier, "id") if identifier is not None else "randomUUID()"
        assignments = [f"{variable}.{escape(node.identifier.source_property)} = {id_value}"]
        assignments.extend(self._property_assignments(ctx, variable, node, data))

        lines = [
            f"CREATE {node_pattern(variable, node.name)}",
            "SET " + ", ".join(assignments),
            f"WITH {', '.join(carry + [variable])}",
        ]
        nested, matches = self._relationship_inputs(ctx, variable, node, data, path)
        lines.extend(nested)
        return lines, matches

    def _property_assignments(
        self,
        ctx: CypherContext,
        variable: str,
        node: NodeTypeDescriptor,
        data: Dict[str, Any],
    ) -> List[str]:
        assignments = []
        for property_field in node.fields:
            if property_field.name in data:
                value = ctx.param(data[property_field.name], property_field.name)
                assignments.append(
                    f"{variable}.{escape(property_field.source_property)} = {value}"
                )
        return assignments

    def _check_node_input(
        self,
        node: NodeTypeDescriptor,
        data: Dict[str, Any],
        path: str,
        creating: bool,
    ) -> None:
        for name, value in data.items():
            if node.relationship(name) is not None:
                continue
            if name == node.identifier.field_name:
                if creating:
                    continue
                raise InvalidInputError(f"'{name}' cannot be updated", path)
            property_field = node.field(name)
            if property_field is None:
                raise InvalidInputError(f"{node.name} has no field '{name}'", path)
            if value is None and property_field.required and not creating:
                raise InvalidInputError(
                    f"required field '{name}' cannot be set to null", path
                )

        if creating:
            for property_field in node.fields:
                if property_field.required and data.get(property_field.name) is None:
                    raise InvalidInputError(
                        f"missing required field '{node.name}.{property_field.name}'", path
                    )

    # ---------------------------------------------------------------------------
    # Relationships
    # ---------------------------------------------------------------------------

    def _relationship_inputs(
        self,
        ctx: CypherContext,
        variable: str,
        node: NodeTypeDescriptor,
        data: Dict[str, Any],
        path: str,
    ) -> Tuple[List[str], List[str]]:
        lines: List[str] = []
        matches: List[str] = []
        for relationship in node.relationships:
            field_input = data.get(relationship.name)
            if field_input is None:
                continue
            field_path = f"{path}.{relationship.name}"
            unknown = sorted(set(field_input) - set(FIELD_INPUT_KEYS))
            if unknown:
                raise InvalidInputError(f"unknown fields {unknown}", field_path)

            for index, entry in enumerate(field_input.get("create") or ()):
                body, report = self._nested_create(
                    ctx, variable, relationship, entry, f"{field_path}.create[{index}]"
                )
                lines.extend(body)
                matches.append(report)
            for index, entry in enumerate(field_input.get("connect") or ()):
                body, report = self._connect(
                    ctx, variable, relationship, entry, f"{field_path}.connect[{index}]"
                )
                lines.extend(body)
                matches.append(report)
        return lines, matches

    def _nested_create(
        self,
        ctx: CypherContext,
        parent: str,
        relationship: RelationshipFieldDescriptor,
        entry: Dict[str, Any],
        path: str,
    ) -> Tuple[List[str], str]:
        related = self._descriptors.related(relationship)
        properties = self._relationship_properties(
            relationship, entry.get("properties"), path, creating=True
        )
        if entry.get("node") is None:
            raise InvalidInputError("'node' is required", path)

        target = ctx.variable("create")
        report = ctx.variable("matches")
        body, matches = self._create_node(
            ctx, target, related, entry["node"], f"{path}.node", carry=[parent]
        )
        relationship_lines, _ = self._create_relationship(
            ctx, parent, relationship, target, properties
        )
        body.extend(relationship_lines)
        body.append(f"RETURN {_concat(matches)} AS {report}")
        return subquery([parent], body), report

    def _connect(
        self,
        ctx: CypherContext,
        parent: str,
        relationship: RelationshipFieldDescriptor,
        entry: Dict[str, Any],
        path: str,
    ) -> Tuple[List[str], str]:
        related = self._descriptors.related(relationship)
        properties = self._relationship_properties(
            relationship, entry.get("properties"), path, creating=True
        )
        if entry.get("where") is None:
            raise InvalidInputError("'where' is required", path)

        target = ctx.variable("connect")
        count = ctx.variable("count")
        report = ctx.variable("matches")

        body = [f"MATCH {node_pattern(target, related.name)}"]
        clause = where_clause(where_predicates(ctx, target, related, entry["where"], path))
        if clause:
            body.append(clause)
        relationship_lines, edge = self._create_relationship(
            ctx, parent, relationship, target, properties
        )
        body.extend(relationship_lines)
        body.append(f"WITH count({edge}) AS {count}")
        body.append(self._report(ctx, path, count, report))
        return subquery([parent], body), report

    def _update_connection(
        self,
        ctx: CypherContext,
        parent: str,
        relationship: RelationshipFieldDescriptor,
        entry: Dict[str, Any],
        path: str,
    ) -> Tuple[List[str], str]:
        """Update properties on existing relationships only.

        Matches the parent's relationships whose related node satisfies
        ``where``; never creates or deletes nodes or relationships.
        """
        related = self._descriptors.related(relationship)
        if entry.get("where") is None:
            raise InvalidInputError("'where' is required", path)
        properties = self._relationship_properties(
            relationship, entry.get("properties") or {}, path, creating=False
        )

        edge = ctx.variable("edge")
        target = ctx.variable("node")
        count = ctx.variable("count")
        report = ctx.variable("matches")

        body = [f"MATCH {relationship_pattern(parent, relationship, target, edge, related.name)}"]
        clause = where_clause(where_predicates(ctx, target, related, entry["where"], path))
        if clause:
            body.append(clause)
        if properties:
            body.append(
                "SET "
                + ", ".join(
                    f"{edge}.{escape(name)} = {ctx.param(value, name)}"
                    for name, value in properties.items()
                )
            )
        body.append(f"WITH count({edge}) AS {count}")
        body.append(self._report(ctx, path, count, report))
        return subquery([parent], body), report

    def _create_relationship(
        self,
        ctx: CypherContext,
        parent: str,
        relationship: RelationshipFieldDescriptor,
        target: str,
        properties: Dict[str, Any],
    ) -> Tuple[List[str], str]:
        """Sequence, create and set properties of one relationship.

        Returns:
            Tuple of (Cypher lines, relationship variable)
        """
        lines, sequence = sequence_subquery(ctx, relationship)
        edge = ctx.variable("edge")
        assignments = [f"{edge}.{ctx.sequence_property} = {sequence}"]
        assignments.extend(
            f"{edge}.{escape(name)} = {ctx.param(value, name)}"
            for name, value in properties.items()
        )
        lines.append(f"CREATE {relationship_pattern(parent, relationship, target, edge)}")
        lines.append("SET " + ", ".join(assignments))
        return lines, edge

    def _report(self, ctx: CypherContext, path: str, count: str, report: str) -> str:
        ctx.match_paths.append(path)
        return f"RETURN [{{path: {ctx.param(path, 'path')}, matched: {count}}}] AS {report}"

    def _connection_relationship(
        self, node: NodeTypeDescriptor, field_name: str, path: str
    ) -> RelationshipFieldDescriptor:
        if not self._settings.relationship_properties_enabled:
            raise InvalidInputError("updateConnection is not available", path)
        relationship = node.relationship(field_name)
        if relationship is None or self._descriptors.properties_of(relationship) is None:
            raise InvalidInputError(
                f"{node.name}.{field_name} has no relationship properties", path
            )
        return relationship

    def _relationship_properties(
        self,
        relationship: RelationshipFieldDescriptor,
        supplied: Optional[Dict[str, Any]],
        path: str,
        creating: bool,
    ) -> Dict[str, Any]:
        """Validate relationship properties and map them to stored names.

        Raises:
            MissingRequiredPropertyError: If creating and a required property is
                absent or null
            InvalidInputError: If properties are not accepted here, a property is
                unknown, or an update nulls a required property
        """
        descriptor = self._descriptors.properties_of(relationship)
        enabled = self._settings.relationship_properties_enabled
        if supplied is not None and (descriptor is None or not enabled):
            raise InvalidInputError(
                f"'{relationship.name}' does not accept relationship properties", path
            )
        if descriptor is None or not enabled:
            return {}

        supplied = supplied or {}
        for name in supplied:
            if descriptor.field(name) is None:
                raise InvalidInputError(f"{descriptor.name} has no property '{name}'", path)

        if creating:
            for required in descriptor.required_fields:
                if supplied.get(required.name) is None:
                    raise MissingRequiredPropertyError(descriptor.name, required.name, path)
        else:
            for name, value in supplied.items():
                if value is None and descriptor.field(name).required:
                    raise InvalidInputError(
                        f"required property '{descriptor.name}.{name}' cannot be set to null",
                        path,
                    )

        return {
            descriptor.field(name).source_property: value
            for name, value in supplied.items()
        }
