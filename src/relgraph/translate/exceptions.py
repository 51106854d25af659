"""Request Translation Exception Hierarchy.

Errors raised while compiling a request into Cypher or while checking the
outcome of a compiled mutation. All of them are request errors: compilation
errors are raised before anything is sent to the database, and errors raised
from inside a transaction roll it back.
"""

from __future__ import annotations

from typing import Optional

from relgraph.exceptions import RequestError


class MissingRequiredPropertyError(RequestError):
    """Raised when a nested create or connect omits a required relationship property.

    Attributes:
        properties: Name of the relationship-properties interface
        property_name: The missing property
        path: Operation path of the offending input, e.g. ``Movie.actors.create[0]``
    """

    def __init__(
        self,
        properties: str,
        property_name: str,
        path: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.properties = properties
        self.property_name = property_name
        self.path = path

        if message is None:
            message = (
                f"Missing required relationship property "
                f"'{properties}.{property_name}'"
            )
            if path:
                message = f"{message} at {path}"

        super().__init__(message)


class NotFoundError(RequestError):
    """Raised when a ``connect`` or ``updateConnection`` matches nothing.

    Attributes:
        path: Operation path of the entry that matched nothing, e.g.
            ``Movie.actors.updateConnection[0]``
    """

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        if message is None:
            message = f"No match found for {path}"
        super().__init__(message)


class InvalidInputError(RequestError):
    """Raised when request arguments are not acceptable for the served schema.

    Attributes:
        reason: What is wrong with the input
        path: Operation path of the offending value (if known)
    """

    def __init__(self, reason: str, path: Optional[str] = None):
        self.reason = reason
        self.path = path
        message = f"Invalid input at {path}: {reason}" if path else f"Invalid input: {reason}"
        super().__init__(message)


class QueryBuildError(RequestError):
    """Raised when a selection cannot be compiled.

    Attributes:
        reason: Explanation of what's wrong
        query_fragment: The problematic selection or Cypher fragment
    """

    def __init__(
        self,
        reason: str,
        query_fragment: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.reason = reason
        self.query_fragment = query_fragment

        if message is None:
            if query_fragment:
                message = f"Query build error: {reason} (fragment: {query_fragment})"
            else:
                message = f"Query build error: {reason}"

        super().__init__(message)
