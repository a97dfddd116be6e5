"""Tests for route token encoding and decoding."""

from __future__ import annotations

import pytest

from explorer.runtime.errors import MalformedPath
from explorer.runtime.path_codec import decode, decode_or_root, encode
from explorer.runtime.types import StatePath


class TestStatePath:
    def test_root_is_empty(self):
        root = StatePath.root()
        assert root.is_root
        assert len(root) == 0
        assert root.parent is None
        assert root.last_index is None

    def test_value_equality(self):
        assert StatePath.of(0, 2, 1) == StatePath([0, 2, 1])
        assert hash(StatePath.of(0, 2, 1)) == hash(StatePath((0, 2, 1)))
        assert StatePath.of(0, 2) != StatePath.of(2, 0)

    def test_parent_and_child(self):
        path = StatePath.of(0, 2, 1)
        assert path.parent == StatePath.of(0, 2)
        assert path.parent.child(1) == path
        assert path.last_index == 1

    def test_prefixes_root_first(self):
        assert StatePath.of(0, 2).prefixes() == [
            StatePath.root(),
            StatePath.of(0),
            StatePath.of(0, 2),
        ]

    @pytest.mark.parametrize("bad", [-1, True, "1", 1.0])
    def test_rejects_invalid_indices(self, bad):
        with pytest.raises(ValueError):
            StatePath.of(0, bad)


class TestEncode:
    def test_root_encodes_empty(self):
        assert encode(StatePath.root()) == ""

    def test_encode_joins_with_delimiter(self):
        assert encode(StatePath.of(0, 2, 1)) == "0/2/1"

    def test_large_indices(self):
        assert encode(StatePath.of(12, 0, 345)) == "12/0/345"


class TestDecode:
    def test_empty_is_root(self):
        assert decode("") == StatePath.root()

    def test_decode_valid(self):
        assert decode("0/2/1") == StatePath.of(0, 2, 1)
        assert decode("7") == StatePath.of(7)

    def test_round_trip_preserves_path(self):
        path = StatePath.of(3, 0, 0, 12)
        assert decode(encode(path)) == path

    def test_leading_zeros_are_accepted(self):
        assert decode("01/002") == StatePath.of(1, 2)

    @pytest.mark.parametrize(
        "token",
        ["a", "a/b", "0//1", "/0", "0/", "/", "-1", "1.5", " 1", "1 ", "+1", "0/x/2", "١"],
    )
    def test_malformed_tokens(self, token):
        with pytest.raises(MalformedPath) as exc_info:
            decode(token)
        assert exc_info.value.token == token

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            decode("0//1")

    def test_none_is_malformed(self):
        with pytest.raises(MalformedPath):
            decode(None)

    @pytest.mark.parametrize("token", [5, 0.5, ["0"], b"0"])
    def test_non_string_is_malformed(self, token):
        with pytest.raises(MalformedPath):
            decode(token)

    def test_error_body(self):
        with pytest.raises(MalformedPath) as exc_info:
            decode("a/b")
        body = exc_info.value.to_dict()
        assert body["error"] == "malformed_path"
        assert body["details"] == {"token": "a/b"}
        assert not exc_info.value.retryable


class TestDecodeOrRoot:
    def test_valid_token_has_no_error(self):
        path, error = decode_or_root("1/0")
        assert path == StatePath.of(1, 0)
        assert error is None

    def test_malformed_falls_back_to_root(self):
        path, error = decode_or_root("a/b")
        assert path == StatePath.root()
        assert isinstance(error, MalformedPath)
