"""Tests for the cursor codec and PageInfo assembly."""

import base64

import pytest

from relgraph.exceptions import RequestError
from relgraph.pagination import (
    CursorCodec,
    CursorDecodeError,
    CursorPosition,
    PageInfo,
    build_page_info,
)


@pytest.fixture
def codec():
    return CursorCodec(b"secret")


class TestCursorCodec:
    def test_decode_returns_encoded_position(self, codec):
        cursor = codec.encode(42, "Movie.actors")

        assert codec.decode(cursor, "Movie.actors") == CursorPosition(42, "Movie.actors")

    def test_cursor_is_opaque_url_safe_string(self, codec):
        cursor = codec.encode(7, "Movie.actors")

        assert isinstance(cursor, str)
        assert "=" not in cursor
        assert "Movie" not in cursor

    def test_ordering_follows_keys(self, codec):
        positions = [codec.decode(codec.encode(k, "Movie.actors")) for k in (3, 1, 2)]

        assert sorted(p.ordering_key for p in positions) == [1, 2, 3]

    def test_rejects_other_discriminator(self, codec):
        cursor = codec.encode(1, "Movie.actors")

        with pytest.raises(CursorDecodeError) as exc_info:
            codec.decode(cursor, "Actor.movies")

        assert exc_info.value.expected_discriminator == "Actor.movies"
        assert "issued for Movie.actors" in str(exc_info.value)

    def test_rejects_other_key(self, codec):
        cursor = CursorCodec(b"other").encode(1, "Movie.actors")

        with pytest.raises(CursorDecodeError, match="signature mismatch"):
            codec.decode(cursor, "Movie.actors")

    def test_rejects_tampered_payload(self, codec):
        cursor = codec.encode(1, "Movie.actors")
        token = base64.urlsafe_b64decode(cursor + "=" * (-len(cursor) % 4))
        forged = token[:16] + token[16:].replace(b"1]", b"9]")
        forged_cursor = base64.urlsafe_b64encode(forged).decode("ascii").rstrip("=")

        with pytest.raises(CursorDecodeError):
            codec.decode(forged_cursor, "Movie.actors")

    @pytest.mark.parametrize("cursor", ["", "not base64!", "YWJj"])
    def test_rejects_garbage(self, codec, cursor):
        with pytest.raises(CursorDecodeError):
            codec.decode(cursor, "Movie.actors")

    def test_decode_error_is_request_error(self):
        assert issubclass(CursorDecodeError, RequestError)

    def test_random_key_per_codec(self):
        cursor = CursorCodec().encode(1, "Movie.actors")

        with pytest.raises(CursorDecodeError):
            CursorCodec().decode(cursor)

    @pytest.mark.parametrize("key", [-1, 1.5, True, "1"])
    def test_encode_rejects_invalid_keys(self, codec, key):
        with pytest.raises(ValueError):
            codec.encode(key, "Movie.actors")


class TestBuildPageInfo:
    def test_more_rows_than_requested(self):
        info = build_page_info(["a", "b"], fetched=3, first=2, had_previous=False)

        assert info == PageInfo(
            hasNextPage=True, hasPreviousPage=False, startCursor="a", endCursor="b"
        )

    def test_exact_page(self):
        info = build_page_info(["a", "b"], fetched=2, first=2, had_previous=True)

        assert info.hasNextPage is False
        assert info.hasPreviousPage is True

    def test_all_edges_requested(self):
        info = build_page_info(["a"], fetched=1, first=None, had_previous=False)

        assert info.hasNextPage is False

    def test_empty_page(self):
        info = build_page_info([], fetched=0, first=5, had_previous=False)

        assert info.startCursor is None
        assert info.endCursor is None

    def test_zero_first_with_remaining_edges(self):
        info = build_page_info([], fetched=1, first=0, had_previous=False)

        assert info.hasNextPage is True
