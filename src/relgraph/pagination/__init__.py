"""Cursor-based pagination primitives.

Cursors are opaque signed tokens encoding a relationship's creation-order
sequence number plus the ``Type.field`` of the connection that issued them.
"""

from relgraph.pagination.cursor import CursorCodec, CursorPosition
from relgraph.pagination.exceptions import CursorDecodeError
from relgraph.pagination.page_info import PageInfo, build_page_info

__all__ = [
    "CursorCodec",
    "CursorDecodeError",
    "CursorPosition",
    "PageInfo",
    "build_page_info",
]
