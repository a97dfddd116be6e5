"""
http.py - Engine client for a model checker exposed over HTTP.

Endpoints queried:
    GET {base_url}/.status            -> status JSON
    GET {base_url}/.states/{route}    -> step JSON (404 if not discovered)

Status JSON:
    {"model": str, "generated": str, "progress": str, "done": bool,
     "recent_path": "0/1" | null, "discoveries": {"name": "0/2/1", ...}}

Step JSON:
    {"action": str, "state": str, "outcome": str | null, "svg": str | null,
     "noop": bool, "next_steps": [{"action": str, "noop": bool}, ...]}
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from explorer.runtime.errors import EngineUnavailable, MalformedPath
from explorer.runtime.path_codec import encode
from explorer.runtime.types import StatePath, Status, StepView, status_from_dict, step_view_from_dict

from .base import ExplorerEngine

logger = logging.getLogger(__name__)


def _request_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Outbound headers: a fresh x-request-id plus any extras."""
    headers = {"x-request-id": str(uuid.uuid4()), "accept": "application/json"}
    if extra:
        headers.update(extra)
    return headers


class HttpExplorerEngine(ExplorerEngine):
    """Queries a remote exploration engine through its HTTP API.

    A single httpx.AsyncClient is reused for the engine's lifetime; call
    aclose() (or use ``async with``) to release it.

    Attributes:
        base_url: Engine root URL, without trailing slash.
        timeout_s: Per-request timeout handed to httpx.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_s,
            transport=transport,
        )

    @property
    def engine_id(self) -> str:
        return "http"

    async def _get_json(self, url: str) -> Optional[Any]:
        """GET url and decode JSON. Returns None on 404."""
        try:
            response = await self._client.get(url, headers=_request_headers())
        except httpx.HTTPError as e:
            logger.warning("Engine request %s failed: %s", url, e)
            raise EngineUnavailable(f"Engine request {url} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            raise EngineUnavailable(f"Engine returned {response.status_code} for {url}")

        try:
            return response.json()
        except ValueError as e:
            raise EngineUnavailable(f"Engine returned invalid JSON for {url}") from e

    async def get_status(self) -> Status:
        data = await self._get_json("/.status")
        if not isinstance(data, dict):
            raise EngineUnavailable("Engine status endpoint returned no status")
        try:
            return status_from_dict(data)
        except MalformedPath as e:
            raise EngineUnavailable(f"Engine status contained a malformed path: {e}") from e
        except (AttributeError, TypeError, ValueError) as e:
            raise EngineUnavailable(f"Engine returned a malformed status payload: {e}") from e

    async def get_step(self, path: StatePath) -> Optional[StepView]:
        data = await self._get_json(f"/.states/{encode(path)}")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise EngineUnavailable(f"Engine returned an unexpected payload for {encode(path)!r}")
        try:
            return step_view_from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise EngineUnavailable(
                f"Engine returned a malformed step payload for {encode(path)!r}: {e}", path=path
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpExplorerEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
