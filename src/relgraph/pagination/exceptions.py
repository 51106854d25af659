"""Pagination exceptions."""

from __future__ import annotations

from typing import Optional

from relgraph.exceptions import RequestError


class CursorDecodeError(RequestError):
    """Raised when a cursor is malformed or was issued for another field.

    Attributes:
        cursor: The rejected cursor string
        reason: Why it was rejected
        expected_discriminator: ``Type.field`` the cursor was presented to
    """

    def __init__(
        self,
        cursor: str,
        reason: str,
        expected_discriminator: Optional[str] = None,
    ):
        self.cursor = cursor
        self.reason = reason
        self.expected_discriminator = expected_discriminator

        message = f"Invalid cursor '{cursor}': {reason}"
        if expected_discriminator:
            message = f"{message} (requested by {expected_discriminator})"

        super().__init__(message)
