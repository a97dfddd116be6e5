"""Tests for the navigation controller state machine.

These tests verify that:
1. Route changes resolve through the repository into the Resolved phase
2. Only the most recently requested path may complete (last-route-wins)
3. Malformed routes fall back to the root with a notice
4. Failures keep the last successfully resolved step
5. close() stops polling and returns to Idle
"""

from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import P

from explorer.runtime.engines.http import HttpExplorerEngine
from explorer.runtime.errors import EngineUnavailable, PathNotFound
from explorer.runtime.navigation import (
    Failed,
    Idle,
    NavigationController,
    NavigationView,
    Resolved,
    Resolving,
)
from explorer.runtime.signals import Cell
from explorer.runtime.status_poller import StatusPoller
from explorer.runtime.step_repository import StepRepository


@pytest.fixture
def controller(engine):
    return NavigationController(StepRepository(engine))


class TestNavigate:
    def test_starts_idle(self, controller):
        assert isinstance(controller.phase, Idle)
        assert controller.route is None
        assert controller.selected_step is None

    def test_resolves_route(self, controller):
        view = asyncio.run(controller.navigate("0/2"))

        assert isinstance(view.phase, Resolved)
        assert view.phase.path == P("0/2")
        assert view.route == "0/2"
        assert view.selected_step.state == "counter = 1"
        assert view.notice is None
        assert [s.action for s in controller.ancestors] == ["", "inc", "stay"]
        assert [s.path for s in controller.next_steps] == [P("0/2/0")]

    def test_publishes_phase_changes(self, controller):
        phases = []
        controller.view.subscribe(lambda view: phases.append(type(view.phase)))

        asyncio.run(controller.navigate("1"))

        assert phases == [Resolving, Resolved]

    def test_noop_step_is_navigable(self, controller):
        view = asyncio.run(controller.navigate("2"))

        assert isinstance(view.phase, Resolved)
        assert view.selected_step.noop is True

    def test_malformed_route_falls_back_to_root(self, controller):
        view = asyncio.run(controller.navigate("a/b"))

        assert isinstance(view.phase, Resolved)
        assert view.current_path == P("")
        assert view.route == ""
        assert "Malformed path" in view.notice
        assert view.selected_step.state == "counter = 0"

    def test_notice_clears_on_next_navigation(self, controller):
        async def scenario():
            await controller.navigate("0//1")
            return await controller.navigate("0")

        view = asyncio.run(scenario())
        assert view.notice is None


class TestLastRouteWins:
    def test_slow_earlier_request_is_dropped(self, engine, controller):
        async def scenario():
            await controller.navigate("")
            gate = asyncio.Event()
            engine.gates["1"] = gate

            slow = asyncio.ensure_future(controller.navigate("1"))
            await asyncio.sleep(0.01)
            assert controller.view.value.is_pending

            fast_view = await controller.navigate("0")
            gate.set()
            slow_view = await slow
            return fast_view, slow_view

        fast_view, slow_view = asyncio.run(scenario())

        assert fast_view.phase == Resolved(P("0"), fast_view.selected_step)
        assert controller.phase.path == P("0")
        assert controller.selected_step.path == P("0")
        # The superseded request reports the current view, not its own result
        assert slow_view.selected_step.path == P("0")

    def test_stale_failure_is_dropped(self, engine, controller):
        async def scenario():
            gate = asyncio.Event()
            engine.gates["1"] = gate
            engine.failing.add("1")

            slow = asyncio.ensure_future(controller.navigate("1"))
            await asyncio.sleep(0.01)
            await controller.navigate("0")
            gate.set()
            await slow

        asyncio.run(scenario())

        assert isinstance(controller.phase, Resolved)
        assert controller.view.value.error is None

    def test_superseded_result_still_fills_cache(self, engine):
        repository = StepRepository(engine)
        controller = NavigationController(repository)

        async def scenario():
            gate = asyncio.Event()
            engine.gates["1"] = gate
            slow = asyncio.ensure_future(controller.navigate("1"))
            await asyncio.sleep(0.01)
            await controller.navigate("0")
            gate.set()
            await slow

        asyncio.run(scenario())

        assert P("1") in repository


class TestFailures:
    def test_failure_keeps_last_step(self, engine, controller):
        async def scenario():
            await controller.navigate("0")
            engine.failing.add("1")
            return await controller.navigate("1")

        view = asyncio.run(scenario())

        assert isinstance(view.phase, Failed)
        assert isinstance(view.error, EngineUnavailable)
        assert view.route == "1"
        assert view.selected_step.path == P("0")

    def test_not_found(self, controller):
        view = asyncio.run(controller.navigate("9/9"))

        assert isinstance(view.phase, Failed)
        assert isinstance(view.error, PathNotFound)
        assert view.error.path == P("9/9")
        assert view.selected_step is None

    def test_malformed_engine_payload_fails_navigation(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/.states/":
                return httpx.Response(200, json={"state": "init", "next_steps": ["go"]})
            return httpx.Response(200, json={"state": "s", "next_steps": [1]})

        async def scenario():
            engine = HttpExplorerEngine("http://checker:3000", transport=httpx.MockTransport(handler))
            async with engine:
                controller = NavigationController(StepRepository(engine))
                return await controller.navigate("0")

        view = asyncio.run(scenario())

        assert isinstance(view.phase, Failed)
        assert isinstance(view.error, EngineUnavailable)
        assert view.error.path == P("0")
        assert view.route == "0"

    def test_retry_after_failure(self, engine, controller):
        async def scenario():
            engine.failing.add("0")
            failed = await controller.navigate("0")
            engine.failing.clear()
            retried = await controller.retry()
            return failed, retried

        failed, retried = asyncio.run(scenario())

        assert isinstance(failed.phase, Failed)
        assert isinstance(retried.phase, Resolved)
        assert retried.selected_step.path == P("0")

    def test_retry_before_any_navigation_goes_to_root(self, controller):
        view = asyncio.run(controller.retry())
        assert view.current_path == P("")


class TestDiscoveries:
    def test_lists_discoveries_from_status(self, engine, discovery_status):
        controller = NavigationController(StepRepository(engine), status=Cell(discovery_status))

        discoveries = controller.discoveries

        assert [(d.name, d.route) for d in discoveries] == [("violation-A", "0/2/0")]

    def test_go_to_discovery(self, engine, discovery_status):
        controller = NavigationController(StepRepository(engine), status=Cell(discovery_status))

        view = asyncio.run(controller.go_to_discovery("violation-A"))

        assert view.selected_step.path == P("0/2/0")
        assert [s.path for s in view.selected_step.path_steps] == P("0/2/0").prefixes()

    def test_unknown_discovery(self, engine, discovery_status):
        controller = NavigationController(StepRepository(engine), status=Cell(discovery_status))

        with pytest.raises(KeyError):
            asyncio.run(controller.go_to_discovery("nope"))

    def test_no_status_no_discoveries(self, controller):
        assert controller.discoveries == []


class TestLifecycle:
    def test_shares_the_poller_status_cell(self, engine):
        poller = StatusPoller(engine)
        controller = NavigationController(StepRepository(engine), poller)
        assert controller.status is poller.status

    def test_close_stops_polling_and_resets(self, engine):
        poller = StatusPoller(engine, interval_s=0.01)
        controller = NavigationController(StepRepository(engine), poller)

        async def scenario():
            async with controller:
                assert poller.running
                await controller.navigate("0")
            return controller.view.value

        view = asyncio.run(scenario())

        assert not poller.running
        assert view == NavigationView()
        assert isinstance(controller.phase, Idle)

    def test_close_drops_outstanding_resolution(self, engine, controller):
        async def scenario():
            gate = asyncio.Event()
            engine.gates["0"] = gate
            pending = asyncio.ensure_future(controller.navigate("0"))
            await asyncio.sleep(0.01)
            await controller.close()
            gate.set()
            await pending

        asyncio.run(scenario())

        assert isinstance(controller.phase, Idle)
        assert controller.selected_step is None
