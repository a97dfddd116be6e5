"""Error taxonomy for graph navigation.

- MalformedPath: a route token could not be decoded (local, never retried).
- PathNotFound: the engine has no node at a path (yet, or ever).
- EngineUnavailable: transient transport/backend failure (retryable).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .types import StatePath


class ExplorerError(Exception):
    """Base class for explorer errors."""

    error_code = "explorer_error"
    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        """Error body in the API's {error, message, details} shape."""
        return {"error": self.error_code, "message": str(self), "details": {}}


class MalformedPath(ExplorerError, ValueError):
    """A route token is not a delimiter-separated list of non-negative integers."""

    error_code = "malformed_path"

    def __init__(self, token: str, reason: str = "not a valid path"):
        self.token = token
        self.reason = reason
        super().__init__(f"Malformed path {token!r}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["details"] = {"token": self.token}
        return body


class PathNotFound(ExplorerError, LookupError):
    """The engine has not discovered a node at this path."""

    error_code = "path_not_found"

    def __init__(self, path: "StatePath"):
        from .path_codec import encode

        self.path = path
        super().__init__(f"No discovered state at path {encode(path)!r}")

    def to_dict(self) -> Dict[str, Any]:
        from .path_codec import encode

        body = super().to_dict()
        body["details"] = {"route": encode(self.path)}
        return body


class EngineUnavailable(ExplorerError):
    """The engine could not be reached or did not answer in time."""

    error_code = "engine_unavailable"
    retryable = True

    def __init__(self, message: str, path: Optional["StatePath"] = None):
        self.path = path
        super().__init__(message)
