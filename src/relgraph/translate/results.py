"""Result shaping.

Turns the rows returned by a compiled statement into the GraphQL response
shape. Cypher projections are keyed by response alias; what cannot be computed
inside the database happens here:
- ``__typename`` values
- edge ordering, page slicing, cursor encoding and ``PageInfo``
- ``NotFoundError`` collection from reported match counts
"""

from __future__ import annotations

import logging
from operator import itemgetter
from typing import Any, Dict, List, Optional, Sequence

from relgraph.pagination import CursorCodec, build_page_info
from relgraph.schema.augmenter import PAGE_INFO
from relgraph.schema.naming import connection_type_name, edge_type_name
from relgraph.translate.exceptions import NotFoundError
from relgraph.translate.selection import (
    TYPENAME,
    ConnectionSelection,
    EdgeNodeSelection,
    EdgesSelection,
    FieldSelection,
    NodeListSelection,
    NodeSelection,
    PageInfoSelection,
    RelationshipSelection,
    ResponseSelection,
)

logger = logging.getLogger(__name__)

SEQUENCE_KEY = "__seq"
EDGES_KEY = "edges"
HAS_PREVIOUS_KEY = "hasPrevious"
RESOLVED_TYPE_KEY = "__resolveType"
CURSOR_FIELD = "cursor"


class ResultShaper:
    """Shapes projected rows according to a selection.

    Args:
        codec: Codec used to encode edge cursors
    """

    def __init__(self, codec: CursorCodec):
        self._codec = codec

    def node(
        self, raw: Optional[Dict[str, Any]], selection: NodeSelection
    ) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        data: Dict[str, Any] = {}
        for field in selection.fields:
            if isinstance(field, FieldSelection):
                if field.name == TYPENAME:
                    data[field.alias] = selection.type_name
                else:
                    data[field.alias] = raw.get(field.alias)
            elif isinstance(field, RelationshipSelection):
                data[field.alias] = self._related(raw.get(field.alias), field)
            elif isinstance(field, ConnectionSelection):
                data[field.alias] = self.connection(
                    raw[field.alias], selection.type_name, field
                )
        return data

    def _related(self, value: Any, field: RelationshipSelection) -> Any:
        if isinstance(value, list):
            return [self.node(item, field.node) for item in value]
        return self.node(value, field.node)

    def connection(
        self,
        raw: Dict[str, Any],
        type_name: str,
        selection: ConnectionSelection,
    ) -> Dict[str, Any]:
        """Shape one connection.

        ``raw`` holds every fetched edge row (including the lookahead row when
        ``first`` was given) and whether any edge lies before ``after``.
        """
        discriminator = f"{type_name}.{selection.name}"
        rows = sorted(raw[EDGES_KEY], key=itemgetter(SEQUENCE_KEY))
        page = rows if selection.first is None else rows[: selection.first]
        cursors = [self._codec.encode(row[SEQUENCE_KEY], discriminator) for row in page]
        page_info = build_page_info(
            cursors, len(rows), selection.first, bool(raw[HAS_PREVIOUS_KEY])
        )

        data: Dict[str, Any] = {}
        for field in selection.fields:
            if isinstance(field, FieldSelection):
                data[field.alias] = connection_type_name(type_name, selection.name)
            elif isinstance(field, EdgesSelection):
                edge_type = edge_type_name(type_name, selection.name)
                data[field.alias] = [
                    self._edge(row[field.alias], cursor, edge_type, field)
                    for row, cursor in zip(page, cursors)
                ]
            elif isinstance(field, PageInfoSelection):
                info = page_info.model_dump()
                data[field.alias] = {
                    f.alias: PAGE_INFO if f.name == TYPENAME else info[f.name]
                    for f in field.fields
                }
        return data

    def _edge(
        self,
        raw: Dict[str, Any],
        cursor: str,
        edge_type: str,
        selection: EdgesSelection,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for field in selection.fields:
            if isinstance(field, EdgeNodeSelection):
                data[field.alias] = self.node(raw[field.alias], field.node)
            elif field.name == CURSOR_FIELD:
                data[field.alias] = cursor
            elif field.name == TYPENAME:
                data[field.alias] = edge_type
            else:
                data[field.alias] = raw.get(field.alias)
        return data

    def response(
        self, rows: Sequence[Dict[str, Any]], selection: ResponseSelection
    ) -> Dict[str, Any]:
        """Shape a mutation response from ``data`` rows in creation order."""
        rows = sorted(rows, key=lambda row: row.get("position") or 0)
        data: Dict[str, Any] = {}
        for field in selection.fields:
            if isinstance(field, NodeListSelection):
                data[field.alias] = [
                    self.node(row["data"][field.alias], field.node) for row in rows
                ]
            else:
                data[field.alias] = selection.type_name
        return data


def collect_not_found(
    rows: Sequence[Dict[str, Any]], expected_paths: Sequence[str] = ()
) -> List[NotFoundError]:
    """One ``NotFoundError`` per reported path that matched nothing.

    A path counts as matched when any returned row matched it. Paths in
    ``expected_paths`` that no row reports, for example because the root
    ``where`` of an update matched no node, matched nothing.
    """
    matched: Dict[str, int] = {path: 0 for path in expected_paths}
    for row in rows:
        for report in row.get("matches") or ():
            path = report["path"]
            matched[path] = max(matched.get(path, 0), report["matched"])
    missing = [NotFoundError(path) for path, count in matched.items() if count == 0]
    if missing:
        logger.debug(f"{len(missing)} connect/updateConnection entries matched nothing")
    return missing
