"""Ping-pong demo system.

Two actors bounce an increasing counter back and forth. Actor 0 serves
Ping(n) to actor 1, which answers Pong(n); each side advances its count when
it sees the value it expects. The search is bounded to counts <= max_nat.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .actor import Actor, ActorModel, Id, Out
from .base import Property


@dataclass(frozen=True)
class Ping:
    value: int


@dataclass(frozen=True)
class Pong:
    value: int


@dataclass(frozen=True)
class PingPongCount:
    value: int


class PingPongActor(Actor):
    """Counts exchanged messages; serves the first Ping if serve_to is set."""

    def __init__(self, serve_to: Optional[Id] = None):
        self.serve_to = serve_to

    def on_start(self, id: Id, out: Out) -> PingPongCount:
        if self.serve_to is not None:
            out.send(self.serve_to, Ping(0))
        return PingPongCount(0)

    def on_msg(self, id: Id, state: PingPongCount, src: Id, msg: Any, out: Out) -> Optional[PingPongCount]:
        if isinstance(msg, Pong) and state.value == msg.value:
            if self.serve_to is not None:
                out.send(self.serve_to, Ping(msg.value + 1))
            return PingPongCount(msg.value + 1)
        if isinstance(msg, Ping) and state.value == msg.value:
            out.send(src, Pong(msg.value))
            return PingPongCount(msg.value + 1)
        return None


def _counts(state) -> list:
    return [s.value for s in state.actor_states]


def ping_pong_model(max_nat: int = 5, lossy: bool = False, duplicating: bool = True) -> ActorModel:
    """Build the ping-pong system bounded at max_nat."""
    return ActorModel(
        actors=[PingPongActor(serve_to=1), PingPongActor()],
        properties=[
            Property.always("delta within 1", lambda m, s: max(_counts(s)) - min(_counts(s)) <= 1),
            Property.always("less than max", lambda m, s: all(c < max_nat for c in _counts(s))),
            Property.sometimes("reaches max", lambda m, s: any(c == max_nat for c in _counts(s))),
        ],
        lossy=lossy,
        duplicating=duplicating,
        boundary=lambda m, s: all(c <= max_nat for c in _counts(s)),
        name=f"ping-pong (max {max_nat})",
    )
