"""
actor.py - Actor systems on an unreliable network, as explorable models.

Actors start by producing an initial state and commands, then react to
delivered messages and timeouts. The network may lose messages (lossy) and
may redeliver them (duplicating). Each system action is one of:

- Deliver: a message in flight reaches its destination actor
- Drop: a message in flight is lost (lossy networks only)
- Timeout: an actor's timer fires

An actor handler that neither changes state nor emits commands is a no-op;
next_state() returns None for it so the engine can flag the action.

Subclasses may also keep a history of the messages that cross the network
(see init_history, record_msg_out and record_msg_in), for properties such as
linearizability that depend on the order of requests and replies rather than
on any single actor's state.

Usage:
    model = ActorModel(
        actors=[PingActor(), PongActor()],
        properties=[Property.always("ok", lambda m, s: ...)],
        lossy=True,
    )
"""

from __future__ import annotations

import html
import pprint
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Iterator, List, Optional, Sequence, Tuple, Union

from .base import Model, Property

# Model-checked actors are addressed by index
Id = int


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class Send:
    """Send msg to dst."""

    dst: Id
    msg: Any


@dataclass(frozen=True)
class SetTimer:
    """Set (or reset) the actor's timer."""


@dataclass(frozen=True)
class CancelTimer:
    """Cancel the actor's timer if one is set."""


Command = Union[Send, SetTimer, CancelTimer]


class Out:
    """Collects the commands emitted by an actor handler."""

    def __init__(self) -> None:
        self._commands: List[Command] = []

    def send(self, recipient: Id, msg: Any) -> None:
        self._commands.append(Send(recipient, msg))

    def broadcast(self, recipients: Sequence[Id], msg: Any) -> None:
        for recipient in recipients:
            self.send(recipient, msg)

    def set_timer(self) -> None:
        self._commands.append(SetTimer())

    def cancel_timer(self) -> None:
        self._commands.append(CancelTimer())

    @property
    def commands(self) -> List[Command]:
        return list(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return f"Out({self._commands!r})"


def is_no_op(next_state: Any, out: Out) -> bool:
    """True if a handler neither updated its state nor emitted commands."""
    return next_state is None and len(out) == 0


def majority(cluster_size: int) -> int:
    """Number of nodes that constitute a majority for a cluster size."""
    return cluster_size // 2 + 1


class Actor(ABC):
    """An actor reacting to messages and timeouts.

    Handlers return the new state, or None to keep the current one.
    """

    @abstractmethod
    def on_start(self, id: Id, out: Out) -> Any:
        """Return the initial state; may emit commands."""
        ...

    @abstractmethod
    def on_msg(self, id: Id, state: Any, src: Id, msg: Any, out: Out) -> Optional[Any]:
        ...

    def on_timeout(self, id: Id, state: Any, out: Out) -> Optional[Any]:
        return None


# =============================================================================
# System state and actions
# =============================================================================


@dataclass(frozen=True)
class Envelope:
    """A message in flight."""

    src: Id
    dst: Id
    msg: Any


@dataclass(frozen=True)
class Deliver:
    src: Id
    dst: Id
    msg: Any


@dataclass(frozen=True)
class Drop:
    envelope: Envelope


@dataclass(frozen=True)
class Timeout:
    id: Id


SystemAction = Union[Deliver, Drop, Timeout]


@dataclass(frozen=True)
class SystemState:
    """Snapshot of every actor's state plus the network and timers."""

    actor_states: Tuple[Any, ...]
    network: FrozenSet[Envelope] = field(default_factory=frozenset)
    is_timer_set: Tuple[bool, ...] = ()
    history: Any = None

    def envelopes(self) -> List[Envelope]:
        """Network contents in a deterministic order."""
        return sorted(self.network, key=lambda e: (e.src, e.dst, repr(e.msg)))


# =============================================================================
# Model
# =============================================================================


class ActorModel(Model):
    """A system of actors communicating over a network.

    Attributes:
        actors: Actors, addressed by their index.
        init_network: Envelopes in flight before any actor starts.
        lossy: Whether messages can be dropped.
        duplicating: Whether delivered messages stay on the network.
    """

    def __init__(
        self,
        actors: Sequence[Actor],
        properties: Optional[Sequence[Property]] = None,
        init_network: Sequence[Envelope] = (),
        lossy: bool = False,
        duplicating: bool = True,
        boundary=None,
        name: Optional[str] = None,
    ):
        self.actors = list(actors)
        self.init_network = list(init_network)
        self.lossy = lossy
        self.duplicating = duplicating
        self._properties = list(properties or [])
        self._boundary = boundary
        self._name = name

    @property
    def name(self) -> str:
        return self._name or type(self).__name__

    def properties(self) -> List[Property]:
        return list(self._properties)

    def within_boundary(self, state: SystemState) -> bool:
        if self._boundary is None:
            return True
        return bool(self._boundary(self, state))

    def init_history(self) -> Any:
        """History carried by the initial state. Must be hashable."""
        return None

    def record_msg_out(self, history: Any, src: Id, dst: Id, msg: Any) -> Optional[Any]:
        """New history after src sends msg, or None to leave it unchanged."""
        return None

    def record_msg_in(self, history: Any, src: Id, dst: Id, msg: Any) -> Optional[Any]:
        """New history after msg is delivered to dst, or None to leave it unchanged."""
        return None

    def _apply_commands(
        self,
        id: Id,
        commands: Sequence[Command],
        network: set,
        timers: List[bool],
        history: Any,
    ) -> Any:
        """Apply an actor's commands in place and return the updated history."""
        for command in commands:
            if isinstance(command, Send):
                network.add(Envelope(id, command.dst, command.msg))
                recorded = self.record_msg_out(history, id, command.dst, command.msg)
                if recorded is not None:
                    history = recorded
            elif isinstance(command, SetTimer):
                # Actor states may not be initialized yet, so grow by index
                while len(timers) <= id:
                    timers.append(False)
                timers[id] = True
            elif isinstance(command, CancelTimer):
                if id < len(timers):
                    timers[id] = False
        return history

    def init_state(self) -> SystemState:
        network = set(self.init_network)
        timers: List[bool] = []
        history = self.init_history()
        actor_states = []
        for index, actor in enumerate(self.actors):
            out = Out()
            actor_states.append(actor.on_start(index, out))
            history = self._apply_commands(index, out.commands, network, timers, history)
        return SystemState(tuple(actor_states), frozenset(network), tuple(timers), history)

    def actions(self, state: SystemState) -> List[SystemAction]:
        actions: List[SystemAction] = []
        for env in state.envelopes():
            if self.lossy:
                actions.append(Drop(env))
            actions.append(Deliver(env.src, env.dst, env.msg))
        for index, is_scheduled in enumerate(state.is_timer_set):
            if is_scheduled:
                actions.append(Timeout(index))
        return actions

    def _handle(self, state: SystemState, action: SystemAction) -> Tuple[Id, Optional[Any], Out]:
        """Run the actor handler behind a Deliver or Timeout action."""
        out = Out()
        if isinstance(action, Deliver):
            index = action.dst
            next_actor_state = self.actors[index].on_msg(
                index, state.actor_states[index], action.src, action.msg, out
            )
        else:
            index = action.id
            next_actor_state = self.actors[index].on_timeout(index, state.actor_states[index], out)
        return index, next_actor_state, out

    def next_state(self, state: SystemState, action: SystemAction) -> Optional[SystemState]:
        if isinstance(action, Drop):
            return replace(state, network=state.network - {action.envelope})

        index, next_actor_state, out = self._handle(state, action)
        history = state.history
        if isinstance(action, Deliver):
            recorded = self.record_msg_in(history, action.src, action.dst, action.msg)
            if recorded is not None:
                history = recorded
        if is_no_op(next_actor_state, out) and history == state.history:
            return None

        network = set(state.network)
        timers = list(state.is_timer_set)
        if isinstance(action, Deliver) and not self.duplicating:
            network.discard(Envelope(action.src, action.dst, action.msg))
        if isinstance(action, Timeout):
            timers[index] = False

        actor_states = list(state.actor_states)
        if next_actor_state is not None:
            actor_states[index] = next_actor_state
        history = self._apply_commands(index, out.commands, network, timers, history)
        return SystemState(tuple(actor_states), frozenset(network), tuple(timers), history)

    def format_action(self, action: SystemAction) -> str:
        if isinstance(action, Deliver):
            return f"{action.src} → {action.dst}: {action.msg!r}"
        if isinstance(action, Drop):
            env = action.envelope
            return f"Drop {env.src} → {env.dst}: {env.msg!r}"
        return f"Timeout {action.id}"

    def format_state(self, state: SystemState) -> str:
        lines = ["actor_states:"]
        for index, actor_state in enumerate(state.actor_states):
            lines.append(f"  {index}: {actor_state!r}")
        lines.append("network:")
        for env in state.envelopes():
            lines.append(f"  {env.src} → {env.dst}: {env.msg!r}")
        if any(state.is_timer_set):
            timers = [str(i) for i, is_set in enumerate(state.is_timer_set) if is_set]
            lines.append(f"timers: {', '.join(timers)}")
        if state.history is not None:
            lines.append(f"history: {state.history}")
        return "\n".join(lines)

    def display_outcome(self, last_state: SystemState, action: SystemAction) -> Optional[str]:
        if isinstance(action, Drop):
            return None
        index, next_actor_state, out = self._handle(last_state, action)
        return pprint.pformat(
            {
                "actor": index,
                "last_state": last_state.actor_states[index],
                "next_state": next_actor_state,
                "commands": out.commands,
            },
            sort_dicts=False,
        )

    def as_svg(self, actions: Sequence[SystemAction]) -> Optional[str]:
        """Message sequence diagram: one lifeline per actor, one row per action."""
        if not self.actors:
            return None
        spacing, row_height, top = 100, 30, 30
        width = spacing * (len(self.actors) + 1)
        height = top + row_height * (len(actions) + 1)

        def x(index: Id) -> int:
            return spacing * (index + 1)

        parts = [
            f"<svg version='1.1' baseProfile='full' width='{width}' height='{height}' "
            f"viewBox='0 0 {width} {height}' xmlns='http://www.w3.org/2000/svg'>",
            "<defs><marker class='svg-event-shape' id='arrow' markerWidth='12' markerHeight='10' "
            "refX='12' refY='5' orient='auto'><polygon points='0 0, 12 5, 0 10' /></marker></defs>",
        ]
        for index in range(len(self.actors)):
            parts.append(
                f"<line x1='{x(index)}' y1='{top}' x2='{x(index)}' y2='{height}' class='svg-actor-timeline' />"
            )
            parts.append(f"<text x='{x(index)}' y='{top - 10}' class='svg-actor-label'>{index}</text>")

        for row, action in enumerate(actions, start=1):
            y = top + row_height * row
            if isinstance(action, Deliver):
                label = html.escape(repr(action.msg))
                parts.append(
                    f"<line x1='{x(action.src)}' x2='{x(action.dst)}' y1='{y - row_height}' y2='{y}' "
                    "marker-end='url(#arrow)' class='svg-event-line' />"
                )
                parts.append(f"<text x='{x(action.dst)}' y='{y}' class='svg-event-label'>{label}</text>")
            elif isinstance(action, Drop):
                env = action.envelope
                label = html.escape(f"drop {env.msg!r}")
                parts.append(
                    f"<line x1='{x(env.src)}' x2='{x(env.dst)}' y1='{y}' y2='{y}' "
                    "stroke-dasharray='4' class='svg-event-line' />"
                )
                parts.append(f"<text x='{x(env.dst)}' y='{y}' class='svg-event-label'>{label}</text>")
            else:
                parts.append(f"<circle cx='{x(action.id)}' cy='{y}' r='5' class='svg-event-shape' />")
                parts.append(f"<text x='{x(action.id)}' y='{y}' class='svg-event-label'>timeout</text>")
        parts.append("</svg>")
        return "".join(parts)
