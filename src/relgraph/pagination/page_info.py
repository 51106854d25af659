"""PageInfo assembly.

``PageInfo`` is computed per response from the rows a connection read
returned; it is never stored.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel


class PageInfo(BaseModel):
    """Relay pagination metadata for one connection response."""

    hasNextPage: bool = False
    hasPreviousPage: bool = False
    startCursor: Optional[str] = None
    endCursor: Optional[str] = None

    model_config = {"frozen": True}


def build_page_info(
    cursors: Sequence[str],
    fetched: int,
    first: Optional[int],
    had_previous: bool,
) -> PageInfo:
    """Assemble PageInfo for a page.

    Args:
        cursors: Encoded cursors of the returned edges (lookahead row excluded)
        fetched: Number of rows fetched, including the lookahead row
        first: Requested page size; ``None`` when every edge was requested
        had_previous: Whether at least one edge lies before ``after``

    Returns:
        The page's PageInfo
    """
    return PageInfo(
        hasNextPage=first is not None and fetched > first,
        hasPreviousPage=had_previous,
        startCursor=cursors[0] if cursors else None,
        endCursor=cursors[-1] if cursors else None,
    )
