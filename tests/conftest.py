"""
Test fixtures for the explorer viewer tests.

Provides a scripted in-memory engine whose answers, delays and failures can
be controlled per route, plus a small sample graph:

    ""        counter = 0       -> inc, dec, stay (no-op)
    "0"       counter = 1       -> inc, dec, stay (no-op)
    "0/1"     counter = 0       (leaf)
    "1"       counter = -1      (leaf)
    "2"       counter = 0       (no-op) -> inc
    "0/2"     counter = 1       (no-op) -> reset
    "0/2/0"   counter = 0       (leaf; the "violation-A" discovery)
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, Optional, Set

import pytest

from explorer.runtime.engines.base import ExplorerEngine
from explorer.runtime.errors import EngineUnavailable
from explorer.runtime.path_codec import decode, encode
from explorer.runtime.types import NextAction, StatePath, Status, StepView


def P(route: str) -> StatePath:
    """Shorthand for decoding a route token in assertions."""
    return decode(route)


def sample_nodes() -> Dict[str, StepView]:
    branch = [NextAction("inc"), NextAction("dec"), NextAction("stay", noop=True)]
    return {
        "": StepView(action="", state="counter = 0", next_actions=list(branch)),
        "0": StepView(
            action="inc",
            state="counter = 1",
            outcome="counter: 0 -> 1",
            next_actions=list(branch),
        ),
        "0/1": StepView(action="dec", state="counter = 0", outcome="counter: 1 -> 0"),
        "1": StepView(action="dec", state="counter = -1", outcome="counter: 0 -> -1"),
        "2": StepView(action="stay", state="counter = 0", noop=True, next_actions=[NextAction("inc")]),
        "0/2": StepView(
            action="stay",
            state="counter = 1",
            noop=True,
            next_actions=[NextAction("reset")],
        ),
        "0/2/0": StepView(action="reset", state="counter = 0", outcome="counter: 1 -> 0"),
    }


class FakeEngine(ExplorerEngine):
    """Scripted engine for exercising the viewer without a model checker.

    Attributes:
        nodes: Route token -> StepView. Missing routes are "not found".
        queries: Number of get_step calls per route token.
        delays: Seconds to sleep before answering a route.
        gates: Events a route waits on before answering.
        failing: Routes that raise EngineUnavailable.
        status: Status returned by get_status().
        status_failures: Number of upcoming get_status() calls that fail.
        status_delay: Seconds to sleep in get_status().
    """

    def __init__(self, nodes: Optional[Dict[str, StepView]] = None, status: Optional[Status] = None):
        self.nodes = nodes if nodes is not None else sample_nodes()
        self.queries: Counter = Counter()
        self.status_calls = 0
        self.delays: Dict[str, float] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.failing: Set[str] = set()
        self.status = status or Status(model="counter", generated="t0", progress="6 states")
        self.status_failures = 0
        self.status_delay = 0.0
        self.closed = False

    @property
    def engine_id(self) -> str:
        return "fake"

    async def get_status(self) -> Status:
        self.status_calls += 1
        if self.status_delay:
            await asyncio.sleep(self.status_delay)
        if self.status_failures > 0:
            self.status_failures -= 1
            raise EngineUnavailable("status endpoint down")
        return self.status

    async def get_step(self, path: StatePath) -> Optional[StepView]:
        route = encode(path)
        self.queries[route] += 1
        if route in self.gates:
            await self.gates[route].wait()
        if route in self.delays:
            await asyncio.sleep(self.delays[route])
        if route in self.failing:
            raise EngineUnavailable(f"engine down while fetching {route!r}", path=path)
        return self.nodes.get(route)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def discovery_status() -> Status:
    return Status(
        model="counter",
        generated="t1",
        progress="6 states",
        recent_path=P("0/2"),
        discoveries={"violation-A": P("0/2/0")},
        done=True,
    )
