"""Root exception for relgraph.

Every error raised by schema building or request translation inherits from
``RelGraphError`` so callers can catch the whole family with one handler.
Errors raised by the Neo4j driver while a statement executes are NOT wrapped
and never inherit from this class.

Example:
    try:
        engine = GraphEngine.from_type_defs(type_defs, executor=manager)
    except RelGraphError as e:
        logger.error(f"relgraph failure: {e}")
"""

from __future__ import annotations


class RelGraphError(Exception):
    """Base exception for all relgraph errors."""

    pass


class RequestError(RelGraphError):
    """Base exception for errors raised while translating a single request.

    A request error always leaves the request's transaction rolled back; no
    partial result is returned alongside it.
    """

    pass
