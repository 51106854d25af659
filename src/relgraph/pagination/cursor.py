"""Cursor Codec.

Encodes a position within an ordered edge sequence into an opaque string.

A cursor carries:
- the ordering key: the relationship's creation-order sequence number
- a discriminator: ``Type.field`` of the connection that issued it

Both are serialized to compact JSON and signed with HMAC-SHA256 under the
codec's key. The token is URL-safe base64 of ``signature || payload``.
Decoding rejects anything that was not produced by ``encode`` with the same key
and, when requested, the same discriminator, so a cursor issued for
``Movie.actors`` can never be replayed against ``Actor.movies``.

Cursors carry no TTL. With the default random key they remain valid for the
lifetime of one served schema instance.

Example:
    >>> codec = CursorCodec(b"secret")
    >>> token = codec.encode(42, "Movie.actors")
    >>> codec.decode(token, "Movie.actors")
    CursorPosition(ordering_key=42, discriminator='Movie.actors')
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from typing import NamedTuple, Optional

from relgraph.pagination.exceptions import CursorDecodeError

CURSOR_VERSION = 1
SIGNATURE_BYTES = 16


class CursorPosition(NamedTuple):
    ordering_key: int
    discriminator: str


class CursorCodec:
    """Signs and verifies pagination cursors.

    Args:
        secret: Signing key. A random 32-byte key is drawn when omitted.
    """

    def __init__(self, secret: Optional[bytes] = None):
        self._secret = secret if secret else secrets.token_bytes(32)

    def encode(self, ordering_key: int, discriminator: str) -> str:
        """Encode a position.

        Args:
            ordering_key: Non-negative creation-order sequence number
            discriminator: ``Type.field`` of the issuing connection

        Returns:
            Opaque cursor string

        Raises:
            ValueError: If the ordering key is not a non-negative integer
        """
        if isinstance(ordering_key, bool) or not isinstance(ordering_key, int):
            raise ValueError(f"Ordering key must be an integer, got {ordering_key!r}")
        if ordering_key < 0:
            raise ValueError(f"Ordering key must be non-negative, got {ordering_key}")

        payload = json.dumps(
            [CURSOR_VERSION, discriminator, ordering_key],
            separators=(",", ":"),
        ).encode("utf-8")
        token = self._sign(payload) + payload
        return base64.urlsafe_b64encode(token).decode("ascii").rstrip("=")

    def decode(
        self, cursor: str, discriminator: Optional[str] = None
    ) -> CursorPosition:
        """Decode and verify a cursor.

        Args:
            cursor: Cursor string from a previous response
            discriminator: When given, the cursor must have been issued for
                this ``Type.field``

        Returns:
            The decoded position

        Raises:
            CursorDecodeError: If the cursor is malformed, forged, or was
                issued for a different connection
        """
        if not isinstance(cursor, str) or not cursor:
            raise CursorDecodeError(str(cursor), "empty cursor", discriminator)

        try:
            padded = cursor + "=" * (-len(cursor) % 4)
            token = base64.urlsafe_b64decode(padded.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError):
            raise CursorDecodeError(cursor, "not valid base64", discriminator) from None

        if len(token) <= SIGNATURE_BYTES:
            raise CursorDecodeError(cursor, "truncated", discriminator)

        signature, payload = token[:SIGNATURE_BYTES], token[SIGNATURE_BYTES:]
        if not hmac.compare_digest(signature, self._sign(payload)):
            raise CursorDecodeError(cursor, "signature mismatch", discriminator)

        try:
            version, issued_for, ordering_key = json.loads(payload)
        except (ValueError, TypeError):
            raise CursorDecodeError(cursor, "unreadable payload", discriminator) from None

        if version != CURSOR_VERSION:
            raise CursorDecodeError(
                cursor, f"unsupported cursor version {version!r}", discriminator
            )
        if (
            not isinstance(issued_for, str)
            or isinstance(ordering_key, bool)
            or not isinstance(ordering_key, int)
        ):
            raise CursorDecodeError(cursor, "unreadable payload", discriminator)
        if discriminator is not None and issued_for != discriminator:
            raise CursorDecodeError(
                cursor, f"issued for {issued_for}", discriminator
            )

        return CursorPosition(ordering_key=ordering_key, discriminator=issued_for)

    def _sign(self, payload: bytes) -> bytes:
        return hmac.new(self._secret, payload, hashlib.sha256).digest()[:SIGNATURE_BYTES]
