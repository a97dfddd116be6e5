"""
path_codec.py - Route token <-> StatePath conversion.

A route token is a "/"-separated list of non-negative integers, one per
action taken from the root. The empty token is the root path.

    encode(StatePath.of(0, 2, 1)) == "0/2/1"
    decode("0/2/1") == StatePath.of(0, 2, 1)
    decode("") == StatePath.root()

Pure functions, no I/O.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .errors import MalformedPath
from .types.paths import StatePath

logger = logging.getLogger(__name__)

DELIMITER = "/"

_DIGITS = frozenset("0123456789")


def encode(path: StatePath) -> str:
    """Encode a path as a route token."""
    return DELIMITER.join(str(index) for index in path.indices)


def decode(token: str) -> StatePath:
    """Decode a route token into a path.

    Args:
        token: Route token such as "0/2/1", or "" for the root.

    Returns:
        The decoded StatePath.

    Raises:
        MalformedPath: On empty segments (leading, trailing or doubled
            delimiters), any segment that is not made of ASCII digits, or a
            token that is not a string.
    """
    if token is None:
        raise MalformedPath("None", "token is missing")
    if not isinstance(token, str):
        raise MalformedPath(repr(token), f"expected a string, got {type(token).__name__}")
    if token == "":
        return StatePath.root()

    indices = []
    for position, segment in enumerate(token.split(DELIMITER)):
        if segment == "":
            raise MalformedPath(token, f"empty segment at position {position}")
        # str.isdigit() accepts non-ASCII digits, so check the alphabet explicitly
        if not set(segment) <= _DIGITS:
            raise MalformedPath(token, f"segment {segment!r} is not a non-negative integer")
        indices.append(int(segment))
    return StatePath(tuple(indices))


def decode_or_root(token: str) -> Tuple[StatePath, Optional[MalformedPath]]:
    """Decode a token, falling back to the root path if it is malformed.

    Returns:
        Tuple of (path, error). error is None when the token was valid.
    """
    try:
        return decode(token), None
    except MalformedPath as e:
        logger.debug("Falling back to root for malformed route: %s", e)
        return StatePath.root(), e
