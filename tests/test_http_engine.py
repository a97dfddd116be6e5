"""Tests for the HTTP engine client, using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from conftest import P

from explorer.runtime.engines.http import HttpExplorerEngine
from explorer.runtime.errors import EngineUnavailable

STATUS_BODY = {
    "model": "two-phase commit",
    "generated": "2026-01-01T00:00:00Z",
    "progress": "120 states generated, 40 unique",
    "recent_path": "0/1",
    "discoveries": {"abort agreement": "0/2/1", "commit": "1"},
    "done": False,
}

STEP_BODY = {
    "action": "0 → 1: Prepare",
    "state": "{...}",
    "outcome": "prepared",
    "svg": "<svg/>",
    "next_steps": [{"action": "1 → 0: Prepared", "noop": False}, "Timeout 0"],
}


def _engine(handler) -> HttpExplorerEngine:
    return HttpExplorerEngine("http://checker:3000/", transport=httpx.MockTransport(handler))


def _run(engine: HttpExplorerEngine, coro_factory):
    async def scenario():
        async with engine:
            return await coro_factory(engine)

    return asyncio.run(scenario())


class TestStatus:
    def test_parses_status(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=STATUS_BODY)

        status = _run(_engine(handler), lambda e: e.get_status())

        assert status.model == "two-phase commit"
        assert status.recent_path == P("0/1")
        assert list(status.discoveries.items()) == [("abort agreement", P("0/2/1")), ("commit", P("1"))]
        assert status.done is False
        assert seen[0].url.path == "/.status"
        assert seen[0].headers["x-request-id"]

    def test_malformed_discovery_path(self):
        body = dict(STATUS_BODY, discoveries={"bad": "0//1"})

        with pytest.raises(EngineUnavailable):
            _run(_engine(lambda request: httpx.Response(200, json=body)), lambda e: e.get_status())

    def test_non_object_payload(self):
        with pytest.raises(EngineUnavailable):
            _run(_engine(lambda request: httpx.Response(200, json=[1, 2])), lambda e: e.get_status())

    def test_missing_status_is_unavailable(self):
        with pytest.raises(EngineUnavailable):
            _run(_engine(lambda request: httpx.Response(404)), lambda e: e.get_status())

    @pytest.mark.parametrize(
        "discoveries",
        [{"x": 5}, ["0/1"], {"x": None}],
    )
    def test_malformed_discoveries(self, discoveries):
        body = {"model": "m", "discoveries": discoveries}

        with pytest.raises(EngineUnavailable) as exc_info:
            _run(_engine(lambda request: httpx.Response(200, json=body)), lambda e: e.get_status())
        assert exc_info.value.__cause__ is not None


class TestStep:
    def test_parses_step(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=STEP_BODY)

        view = _run(_engine(handler), lambda e: e.get_step(P("0/2/1")))

        assert seen == ["/.states/0/2/1"]
        assert view.action == "0 → 1: Prepare"
        assert view.outcome == "prepared"
        assert [(a.action, a.noop) for a in view.next_actions] == [
            ("1 → 0: Prepared", False),
            ("Timeout 0", False),
        ]

    def test_root_path(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"state": "init", "next_steps": []})

        view = _run(_engine(handler), lambda e: e.get_step(P("")))

        assert seen == ["/.states/"]
        assert view.action == ""
        assert view.outcome is None

    def test_not_found_is_none(self):
        view = _run(_engine(lambda request: httpx.Response(404)), lambda e: e.get_step(P("9")))
        assert view is None

    @pytest.mark.parametrize(
        "body",
        [
            {"state": "s", "next_steps": [1]},
            {"state": "s", "next_steps": 7},
            {"state": "s", "next_steps": [None]},
        ],
    )
    def test_malformed_step_is_unavailable(self, body):
        with pytest.raises(EngineUnavailable) as exc_info:
            _run(_engine(lambda request: httpx.Response(200, json=body)), lambda e: e.get_step(P("0/1")))

        assert exc_info.value.path == P("0/1")
        assert exc_info.value.retryable
        assert exc_info.value.__cause__ is not None


class TestTransportFailures:
    def test_server_error(self):
        with pytest.raises(EngineUnavailable) as exc_info:
            _run(_engine(lambda request: httpx.Response(500)), lambda e: e.get_step(P("0")))
        assert exc_info.value.retryable

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(EngineUnavailable) as exc_info:
            _run(_engine(handler), lambda e: e.get_status())
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not json</html>")

        with pytest.raises(EngineUnavailable):
            _run(_engine(handler), lambda e: e.get_step(P("0")))

    def test_request_ids_are_unique(self):
        ids = []

        def handler(request: httpx.Request) -> httpx.Response:
            ids.append(request.headers["x-request-id"])
            return httpx.Response(200, content=json.dumps(STEP_BODY).encode())

        async def two_requests(engine):
            await engine.get_step(P("0"))
            await engine.get_step(P("1"))

        _run(_engine(handler), two_requests)

        assert len(set(ids)) == 2
