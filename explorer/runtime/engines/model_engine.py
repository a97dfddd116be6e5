"""
model_engine.py - In-process exploration engine over a Model.

Explores the model breadth-first, so the path recorded for each unique
state (and therefore for each discovery) is a shortest one. Exploration is
incremental: check(max_states) advances the search by a bounded amount, and
get_status() can do so automatically on every poll, so the reported graph
grows the way a remote checker's would.

get_step() replays a path from the initial state rather than looking it up
in the visited set, so any path made of valid action indices resolves, even
one that leads to an already-visited state by a different route.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple

from explorer.models.base import Model
from explorer.runtime.types import NextAction, StatePath, Status, StepView

from .base import ExplorerEngine

logger = logging.getLogger(__name__)


class ModelEngine(ExplorerEngine):
    """Breadth-first explorer for an in-process Model.

    Attributes:
        model: The model being explored.
        states_per_poll: States to explore on each get_status() call.
            0 disables automatic exploration; call check() explicitly.
    """

    def __init__(self, model: Model, states_per_poll: int = 1000):
        self.model = model
        self.states_per_poll = states_per_poll
        self._properties = model.properties()
        init = model.init_state()
        self._visited: Dict[Any, StatePath] = {init: StatePath.root()}
        self._frontier: Deque[Tuple[Any, StatePath]] = deque([(init, StatePath.root())])
        self._discoveries: Dict[str, StatePath] = {}
        self._generated = 1
        self._max_depth = 0
        self._recent_path: Optional[StatePath] = None
        self._updated_at = datetime.now(timezone.utc).isoformat()

    @property
    def engine_id(self) -> str:
        return "model"

    @property
    def is_done(self) -> bool:
        return not self._frontier

    @property
    def unique_state_count(self) -> int:
        return len(self._visited)

    @property
    def generated_count(self) -> int:
        return self._generated

    @property
    def discoveries(self) -> Dict[str, StatePath]:
        return dict(self._discoveries)

    def check(self, max_states: int) -> int:
        """Explore up to max_states frontier states.

        Returns:
            Number of states expanded.
        """
        expanded = 0
        while self._frontier and expanded < max_states:
            state, path = self._frontier.popleft()
            expanded += 1
            self._recent_path = path
            self._max_depth = max(self._max_depth, len(path))

            for prop in self._properties:
                if prop.name not in self._discoveries and prop.is_discovery(self.model, state):
                    logger.debug("Discovery %r at depth %d", prop.name, len(path))
                    self._discoveries[prop.name] = path

            for index, action in enumerate(self.model.actions(state)):
                next_state = self.model.next_state(state, action)
                if next_state is None:
                    continue
                self._generated += 1
                if not self.model.within_boundary(next_state):
                    continue
                if next_state not in self._visited:
                    child = path.child(index)
                    self._visited[next_state] = child
                    self._frontier.append((next_state, child))

        if expanded:
            self._updated_at = datetime.now(timezone.utc).isoformat()
        return expanded

    def check_all(self, limit: int = 1_000_000) -> int:
        """Explore until the frontier is empty or limit states were expanded."""
        return self.check(limit)

    def progress(self) -> str:
        return (
            f"{self._generated} states generated, {len(self._visited)} unique, "
            f"max depth {self._max_depth}"
        )

    async def get_status(self) -> Status:
        if self.states_per_poll > 0:
            self.check(self.states_per_poll)
        return Status(
            model=self.model.name,
            generated=self._updated_at,
            progress=self.progress(),
            recent_path=self._recent_path,
            discoveries=dict(self._discoveries),
            done=self.is_done,
        )

    def _replay(self, path: StatePath) -> Optional[Tuple[Any, Any, Any, List[Any], bool]]:
        """Walk path from the initial state.

        Returns:
            (last_state, last_action, state, actions_taken, noop), or None if
            an index is out of range.
        """
        state = self.model.init_state()
        last_state, last_action, noop = None, None, False
        taken: List[Any] = []
        for index in path:
            actions = self.model.actions(state)
            if index >= len(actions):
                return None
            action = actions[index]
            next_state = self.model.next_state(state, action)
            last_state, last_action = state, action
            noop = next_state is None
            if next_state is not None:
                state = next_state
            taken.append(action)
        return last_state, last_action, state, taken, noop

    async def get_step(self, path: StatePath) -> Optional[StepView]:
        replayed = self._replay(path)
        if replayed is None:
            return None
        last_state, last_action, state, taken, noop = replayed

        next_actions = [
            NextAction(
                action=self.model.format_action(action),
                noop=self.model.next_state(state, action) is None,
            )
            for action in self.model.actions(state)
        ]
        return StepView(
            action=self.model.format_action(last_action) if taken else "",
            state=self.model.format_state(state),
            outcome=self.model.display_outcome(last_state, last_action) if taken else None,
            svg=self.model.as_svg(taken),
            noop=noop,
            next_actions=next_actions,
        )
