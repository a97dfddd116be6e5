"""
render.py - Pure projection from navigation view to display fields.

render() is deterministic and performs no I/O. Two independent toggles
shape the output:

- is_complete_state: show the full state rather than the outcome. Steps
  without an outcome (the root) always show the full state.
- is_compact: collapse whitespace runs instead of keeping the preformatted
  layout.

No-op links (actions that leave the observable state unchanged) get a css
class so they can be de-emphasised. The flag never affects navigation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import PathNotFound
from .navigation import NavigationView
from .path_codec import encode
from .signals import Cell, Computed
from .types import StepStub

_WHITESPACE = re.compile(r"\s+")

NOOP_CSS_CLASS = "noop"
NOOP_PREFIXES = ("noop", "no-op", "no_op")


@dataclass(frozen=True)
class DisplayMode:
    """Client-local display toggles; never part of the shareable route."""

    is_complete_state: bool = False
    is_compact: bool = False


@dataclass(frozen=True)
class StepLink:
    route: str
    action: str
    noop: bool = False
    css_class: str = ""


@dataclass(frozen=True)
class RenderedView:
    """Display fields derived from a NavigationView and a DisplayMode."""

    route: Optional[str] = None
    phase: str = "idle"
    display_text: str = ""
    diagram_markup: Optional[str] = None
    preformatted: bool = True
    notice: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False
    not_found: bool = False
    path_links: List[StepLink] = field(default_factory=list)
    next_links: List[StepLink] = field(default_factory=list)


def is_noop(stub: StepStub) -> bool:
    """Engine no-op flag, or an action label that names a no-op."""
    if stub.noop:
        return True
    return stub.action.strip().lower().startswith(NOOP_PREFIXES)


def compact(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def step_link(stub: StepStub) -> StepLink:
    noop = is_noop(stub)
    return StepLink(
        route=encode(stub.path),
        action=stub.action,
        noop=noop,
        css_class=NOOP_CSS_CLASS if noop else "",
    )


def render(view: NavigationView, mode: DisplayMode) -> RenderedView:
    """Project a NavigationView onto display fields.

    Args:
        view: Current navigation view.
        mode: Display toggles.

    Returns:
        RenderedView. With no selected step the text fields are empty.
    """
    error = view.error
    step = view.selected_step
    if step is None:
        return RenderedView(
            route=view.route,
            phase=view.phase.name,
            notice=view.notice,
            error=str(error) if error is not None else None,
            retryable=bool(error is not None and error.retryable),
            not_found=isinstance(error, PathNotFound),
        )

    if mode.is_complete_state or step.outcome is None:
        text = step.state
    else:
        text = step.outcome
    if mode.is_compact:
        text = compact(text)

    return RenderedView(
        route=view.route,
        phase=view.phase.name,
        display_text=text,
        diagram_markup=step.svg,
        preformatted=not mode.is_compact,
        notice=view.notice,
        error=str(error) if error is not None else None,
        retryable=bool(error is not None and error.retryable),
        not_found=isinstance(error, PathNotFound),
        path_links=[step_link(stub) for stub in step.path_steps],
        next_links=[step_link(stub) for stub in step.next_steps],
    )


def bind_render(view: Cell[NavigationView], mode: Cell[DisplayMode]) -> Computed[RenderedView]:
    """Derive a RenderedView cell that recomputes when the view or mode changes."""
    return Computed([view, mode], render, name="rendered")
