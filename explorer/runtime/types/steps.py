"""Step types for resolved graph nodes.

The engine answers a path query with a StepView: the node's own payload
plus the labels of its outgoing actions. The StepRepository turns that into
a Step, which additionally carries the full ancestor chain and the child
paths. Building those lists in one place keeps the path invariants true no
matter what the engine returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .paths import StatePath


@dataclass(frozen=True)
class NextAction:
    """An outgoing action as reported by the engine."""

    action: str
    noop: bool = False


@dataclass(frozen=True)
class StepView:
    """Per-node payload returned by an engine for a single path.

    Attributes:
        action: Label of the action that produced this node ("" for root).
        state: Full serialized state.
        outcome: Representation relative to the predecessor, if meaningful.
        svg: Optional diagram markup for this step.
        noop: Engine hint that the producing action left the state unchanged.
        next_actions: Outgoing actions in engine enumeration order.
    """

    action: str
    state: str
    outcome: Optional[str] = None
    svg: Optional[str] = None
    noop: bool = False
    next_actions: List[NextAction] = field(default_factory=list)


@dataclass(frozen=True)
class StepStub:
    """Minimal reference to a step, used for ancestor and child links."""

    path: StatePath
    action: str
    noop: bool = False


@dataclass(frozen=True)
class Step:
    """A fully resolved graph node.

    Invariants (established by the StepRepository):
        - path_steps is the ancestor chain of path, root first, self last.
        - next_steps[i].path == path.child(i).
        - outcome is None for the root.
    """

    path: StatePath
    action: str
    state: str
    outcome: Optional[str] = None
    svg: Optional[str] = None
    noop: bool = False
    next_steps: List[StepStub] = field(default_factory=list)
    path_steps: List[StepStub] = field(default_factory=list)

    @property
    def stub(self) -> StepStub:
        return StepStub(path=self.path, action=self.action, noop=self.noop)


def step_view_from_dict(data: Dict[str, Any]) -> StepView:
    """Parse a StepView from an engine payload."""
    next_actions = []
    for item in data.get("next_steps") or []:
        if isinstance(item, str):
            next_actions.append(NextAction(action=item))
        else:
            next_actions.append(
                NextAction(action=str(item.get("action", "")), noop=bool(item.get("noop", False)))
            )
    return StepView(
        action=str(data.get("action") or ""),
        state=str(data.get("state", "")),
        outcome=data.get("outcome"),
        svg=data.get("svg"),
        noop=bool(data.get("noop", False)),
        next_actions=next_actions,
    )


def step_stub_to_dict(stub: StepStub) -> Dict[str, Any]:
    from ..path_codec import encode

    return {"route": encode(stub.path), "action": stub.action, "noop": stub.noop}


def step_to_dict(step: Step) -> Dict[str, Any]:
    """Convert Step to a dictionary for JSON serialization."""
    from ..path_codec import encode

    return {
        "route": encode(step.path),
        "action": step.action,
        "state": step.state,
        "outcome": step.outcome,
        "svg": step.svg,
        "noop": step.noop,
        "next_steps": [step_stub_to_dict(s) for s in step.next_steps],
        "path_steps": [step_stub_to_dict(s) for s in step.path_steps],
    }
