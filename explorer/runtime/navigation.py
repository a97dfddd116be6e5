"""
navigation.py - Navigation controller for the state graph viewer.

The controller owns the current path and turns route changes into Step
lookups. Its phases:

    Idle               before the first route event, and after close()
    Resolving(path)    a lookup for path is outstanding
    Resolved(path, s)  path resolved to Step s
    Failed(path, e)    the lookup for path failed with e

Any route change moves to Resolving. Only the most recently requested path
may complete the transition (last-route-wins): each request takes a
generation number, and a completion whose generation is no longer current is
dropped. A failure never clears the last successfully resolved step, so after
the first successful load the view always has a step to show.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Union

from .errors import ExplorerError
from .path_codec import decode_or_root, encode
from .signals import Cell
from .status_poller import StatusPoller
from .step_repository import StepRepository
from .types import StatePath, Status, Step, StepStub

logger = logging.getLogger(__name__)


# =============================================================================
# Phases
# =============================================================================


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Resolving:
    path: StatePath
    name = "resolving"


@dataclass(frozen=True)
class Resolved:
    path: StatePath
    step: Step
    name = "resolved"


@dataclass(frozen=True)
class Failed:
    path: StatePath
    error: ExplorerError
    name = "failed"


Phase = Union[Idle, Resolving, Resolved, Failed]


@dataclass(frozen=True)
class NavigationView:
    """Everything the render layer binds to.

    Attributes:
        phase: Current controller phase.
        current_path: Most recently requested path (None while Idle).
        selected_step: Last successfully resolved Step, kept through failures.
        notice: Transient user-visible message (e.g. malformed route).
    """

    phase: Phase = Idle()
    current_path: Optional[StatePath] = None
    selected_step: Optional[Step] = None
    notice: Optional[str] = None

    @property
    def route(self) -> Optional[str]:
        """Shareable route token for the current path."""
        return encode(self.current_path) if self.current_path is not None else None

    @property
    def error(self) -> Optional[ExplorerError]:
        return self.phase.error if isinstance(self.phase, Failed) else None

    @property
    def is_pending(self) -> bool:
        return isinstance(self.phase, Resolving)


@dataclass(frozen=True)
class Discovery:
    """A named path of interest, with its route for linking."""

    name: str
    path: StatePath

    @property
    def route(self) -> str:
        return encode(self.path)


# =============================================================================
# Controller
# =============================================================================


class NavigationController:
    """Owns the current path and drives Step resolution.

    Create one per mounted viewer; close() tears it down.

    Attributes:
        view: Cell publishing the NavigationView.
        status: Cell publishing the latest engine Status (shared with the poller).
    """

    def __init__(
        self,
        repository: StepRepository,
        poller: Optional[StatusPoller] = None,
        status: Optional[Cell[Optional[Status]]] = None,
    ):
        self._repository = repository
        self._poller = poller
        if status is None:
            status = poller.status if poller is not None else Cell(None, name="status")
        self.status: Cell[Optional[Status]] = status
        self.view: Cell[NavigationView] = Cell(NavigationView(), name="navigation")
        self._generation = 0

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.view.value.phase

    @property
    def route(self) -> Optional[str]:
        return self.view.value.route

    @property
    def selected_step(self) -> Optional[Step]:
        return self.view.value.selected_step

    @property
    def ancestors(self) -> List[StepStub]:
        step = self.selected_step
        return list(step.path_steps) if step is not None else []

    @property
    def next_steps(self) -> List[StepStub]:
        step = self.selected_step
        return list(step.next_steps) if step is not None else []

    @property
    def discoveries(self) -> List[Discovery]:
        status = self.status.value
        if status is None:
            return []
        return [Discovery(name, path) for name, path in status.discoveries.items()]

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def navigate(self, route: str) -> NavigationView:
        """Handle an external route change.

        A malformed route navigates to the root and leaves a notice.
        """
        path, error = decode_or_root(route)
        notice = None
        if error is not None:
            notice = f"{error}. Showing the initial state instead."
            logger.info("Malformed route %r, navigating to root", route)
        return await self.go(path, notice=notice)

    async def go(self, path: StatePath, notice: Optional[str] = None) -> NavigationView:
        """Navigate to path.

        No-op flags on links are cosmetic; every path is resolved the same way.

        Returns:
            The view after this request settled, or the current view if the
            request was superseded while it was outstanding.
        """
        self._generation += 1
        generation = self._generation
        self.view.set(
            replace(self.view.value, phase=Resolving(path), current_path=path, notice=notice)
        )

        try:
            step = await self._repository.resolve(path)
        except ExplorerError as e:
            if generation != self._generation:
                logger.debug("Dropping stale failure for %r", encode(path))
                return self.view.value
            logger.warning("Navigation to %r failed: %s", encode(path), e)
            self.view.set(replace(self.view.value, phase=Failed(path, e)))
            return self.view.value

        if generation != self._generation:
            logger.debug("Dropping stale resolution for %r", encode(path))
            return self.view.value
        self.view.set(replace(self.view.value, phase=Resolved(path, step), selected_step=step))
        return self.view.value

    async def retry(self) -> NavigationView:
        """Re-request the current path (retry affordance after a failure)."""
        path = self.view.value.current_path
        if path is None:
            path = StatePath.root()
        return await self.go(path)

    async def go_to_discovery(self, name: str) -> NavigationView:
        """Navigate to the path of a named discovery.

        Raises:
            KeyError: If no discovery with that name is known.
        """
        for discovery in self.discoveries:
            if discovery.name == name:
                return await self.go(discovery.path)
        raise KeyError(name)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        if self._poller is not None:
            self._poller.start()

    async def close(self) -> None:
        """Stop polling, abandon in-flight results, and return to Idle."""
        if self._poller is not None:
            await self._poller.stop()
        # Outstanding resolutions complete into a generation that is gone
        self._generation += 1
        self.view.set(NavigationView())

    async def __aenter__(self) -> "NavigationController":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
