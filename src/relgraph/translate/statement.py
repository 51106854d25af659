"""Compiled statements.

A ``CompiledStatement`` is the unit handed to the database collaborator: one
parameterized Cypher statement, whether it writes, and how to turn its rows
into the response value of the root field it was compiled from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Protocol, Sequence, Tuple

from relgraph.translate.results import collect_not_found
from relgraph.translate.exceptions import NotFoundError

Rows = List[Dict[str, Any]]


def _rows(rows: Rows) -> Any:
    return rows


@dataclass
class CompiledStatement:
    """One Cypher statement plus its post-processing.

    Attributes:
        cypher: Statement text
        params: Bound parameter values
        write: True for statements that must run in a write transaction
        shape: Turns the returned rows into the response value
        require_match: When True, ``verify`` raises the first ``NotFoundError``
            so the enclosing transaction rolls back
        match_paths: Paths of the ``connect``/``updateConnection`` entries;
            all of them matched nothing when no row comes back
    """

    cypher: str
    params: Dict[str, Any] = field(default_factory=dict)
    write: bool = False
    shape: Callable[[Rows], Any] = _rows
    require_match: bool = False
    match_paths: Tuple[str, ...] = ()

    def verify(self, rows: Rows) -> None:
        """Check the rows while the transaction is still open.

        Raises:
            NotFoundError: If matches are required and an entry matched nothing
        """
        if not self.require_match:
            return
        missing = collect_not_found(rows, self.match_paths)
        if missing:
            raise missing[0]

    def not_found(self, rows: Rows) -> List[NotFoundError]:
        return collect_not_found(rows, self.match_paths)


class StatementExecutor(Protocol):
    """Database collaborator running statements in exactly one transaction.

    Implementations run the statements in order inside a single read (or
    write) transaction, call ``verify`` on each statement's rows before
    committing, and return the rows of every statement. Any exception rolls
    the whole transaction back. Driver errors are raised unmodified.
    """

    def execute(
        self, statements: Sequence[CompiledStatement], *, write: bool
    ) -> List[Rows]:
        ...
