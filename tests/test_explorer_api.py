"""Tests for the explorer HTTP API."""

from __future__ import annotations

import asyncio
import json
import time

import pytest
from conftest import FakeEngine
from fastapi.testclient import TestClient

from explorer.api.routes.events import format_sse_event
from explorer.api.server import create_app
from explorer.config.runtime_config import ExplorerConfig
from explorer.models import ping_pong_model
from explorer.runtime.engines import HttpExplorerEngine, ModelEngine, get_engine

TEST_CONFIG = ExplorerConfig(engine_kind="demo", poll_interval_s=0.05, max_backoff_s=0.1, source="test")


def wait_for_status(client: TestClient, timeout: float = 5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        resp = client.get("/api/status")
        if resp.status_code == 200:
            return resp.json()
        time.sleep(0.02)
    raise AssertionError("status never became available")


@pytest.fixture
def client():
    engine = ModelEngine(ping_pong_model(max_nat=2))
    with TestClient(create_app(config=TEST_CONFIG, engine=engine)) as client:
        yield client


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_client(fake_engine):
    with TestClient(create_app(config=TEST_CONFIG, engine=fake_engine)) as client:
        yield client


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["engine"] == "model"
        assert data["phase"] == "idle"
        assert data["poller"]["running"] is True

    def test_health_counts_cached_steps(self, client):
        client.get("/api/view/0")
        data = client.get("/api/health").json()

        assert data["phase"] == "resolved"
        assert data["repository"]["cached_steps"] == 2
        assert data["repository"]["engine_queries"] == 2


class TestStatus:
    def test_status(self, client):
        data = wait_for_status(client)

        assert data["model"] == "ping-pong (max 2)"
        assert data["done"] is True
        assert "reaches max" in data["discoveries"]

    def test_unavailable_before_first_poll(self, fake_engine):
        fake_engine.status_failures = 1_000_000
        with TestClient(create_app(config=TEST_CONFIG, engine=fake_engine)) as client:
            resp = client.get("/api/status")

        assert resp.status_code == 503
        assert resp.json()["detail"]["error"] == "status_unavailable"

    def test_event_stream(self, client):
        wait_for_status(client)
        resp = client.get("/api/status/events", params={"max_events": 1})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert "event: connected" in resp.text
        assert "event: status" in resp.text
        assert "ping-pong (max 2)" in resp.text


class TestEventFormat:
    def test_frame_layout(self):
        frame = format_sse_event("status", {"model": "m"}, event_id="3", retry=500)

        lines = frame.split("\n")
        assert lines[:3] == ["id: 3", "event: status", "retry: 500"]
        assert lines[3].startswith("data: ")
        assert frame.endswith("\n\n")
        payload = json.loads(lines[3][len("data: "):])
        assert payload["model"] == "m"
        assert payload["type"] == "status"
        assert "timestamp" in payload

    def test_caller_data_is_not_mutated(self):
        data = {"type": "custom"}
        frame = format_sse_event("status", data)

        assert data == {"type": "custom"}
        assert '"type": "custom"' in frame


class TestSteps:
    def test_get_step(self, client):
        resp = client.get("/api/steps/0")

        assert resp.status_code == 200
        data = resp.json()
        assert data["route"] == "0"
        assert data["action"] == "0 → 1: Ping(value=0)"
        assert [s["route"] for s in data["path_steps"]] == ["", "0"]
        assert [s["route"] for s in data["next_steps"]] == ["0/0", "0/1"]
        assert [s["noop"] for s in data["next_steps"]] == [True, False]

    def test_get_step_does_not_navigate(self, client):
        client.get("/api/steps/0")
        assert client.get("/api/health").json()["phase"] == "idle"

    def test_malformed_route(self, client):
        resp = client.get("/api/steps/a/b")

        assert resp.status_code == 400
        assert resp.json()["detail"] == {
            "error": "malformed_path",
            "message": "Malformed path 'a/b': segment 'a' is not a non-negative integer",
            "details": {"token": "a/b"},
        }

    def test_not_found(self, client):
        resp = client.get("/api/steps/7")

        assert resp.status_code == 404
        assert resp.json()["detail"]["error"] == "path_not_found"
        assert resp.json()["detail"]["details"] == {"route": "7"}

    def test_engine_unavailable(self, fake_engine, fake_client):
        fake_engine.failing.add("0")
        resp = fake_client.get("/api/steps/0")

        assert resp.status_code == 503
        assert resp.json()["detail"]["error"] == "engine_unavailable"


class TestView:
    def test_root_view(self, client):
        data = client.get("/api/view").json()

        assert data["route"] == ""
        assert data["phase"] == "resolved"
        assert "actor_states:" in data["display_text"]
        assert data["diagram_markup"].startswith("<svg")

    def test_outcome_and_complete_modes(self, client):
        outcome = client.get("/api/view/0").json()
        complete = client.get("/api/view/0", params={"complete": True}).json()

        assert "'actor': 1" in outcome["display_text"]
        assert "actor_states:" in complete["display_text"]

    def test_compact_mode(self, client):
        data = client.get("/api/view/0", params={"complete": True, "compact": True}).json()

        assert "\n" not in data["display_text"]
        assert data["preformatted"] is False

    def test_noop_links_are_flagged(self, client):
        data = client.get("/api/view/0").json()

        assert [link["css_class"] for link in data["next_links"]] == ["noop", ""]

    def test_malformed_route_shows_root_with_notice(self, client):
        data = client.get("/api/view/a/b").json()

        assert data["route"] == ""
        assert data["phase"] == "resolved"
        assert "Showing the initial state instead" in data["notice"]

    def test_unknown_route_is_flagged_not_found(self, client):
        data = client.get("/api/view/7/7").json()

        assert data["phase"] == "failed"
        assert data["not_found"] is True
        assert data["retryable"] is False
        assert "7/7" in data["error"]

    def test_discoveries_listed(self, client):
        wait_for_status(client)
        data = client.get("/api/view").json()

        names = [d["name"] for d in data["discoveries"]]
        assert "reaches max" in names

    def test_failure_then_retry(self, fake_engine, fake_client):
        fake_client.get("/api/view/0")
        fake_engine.failing.add("1")

        failed = fake_client.get("/api/view/1").json()
        assert failed["phase"] == "failed"
        assert failed["retryable"] is True
        assert failed["not_found"] is False
        assert failed["route"] == "1"
        # Last good step stays on screen
        assert failed["display_text"] == "counter: 0 -> 1"

        fake_engine.failing.clear()
        retried = fake_client.post("/api/view/retry").json()
        assert retried["phase"] == "resolved"
        assert retried["display_text"] == "counter: 0 -> -1"


class TestEngineFactory:
    def test_demo_engine(self):
        engine = get_engine(ExplorerConfig(engine_kind="demo", demo_model="ping-pong-lossy"))

        assert isinstance(engine, ModelEngine)
        assert engine.model.lossy is True

    def test_register_demo_engine(self):
        engine = get_engine(ExplorerConfig(engine_kind="demo", demo_model="replicated-register"))

        assert engine.model.name == "register (2 servers, 2 clients)"
        assert engine.model.duplicating is False

    def test_unknown_demo_model(self):
        with pytest.raises(ValueError):
            get_engine(ExplorerConfig(engine_kind="demo", demo_model="nope"))

    def test_http_engine(self):
        engine = get_engine(ExplorerConfig(engine_url="http://checker:3000/"))

        assert isinstance(engine, HttpExplorerEngine)
        assert engine.base_url == "http://checker:3000"
        asyncio.run(engine.aclose())

    def test_app_builds_and_closes_its_own_engine(self):
        with TestClient(create_app(config=TEST_CONFIG)) as client:
            data = client.get("/api/health").json()
        assert data["engine"] == "model"
