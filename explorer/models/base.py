"""
base.py - Interface for models explored in-process.

A Model describes a state space: an initial state, the actions enabled in a
state, and the state each action leads to. Properties name the states of
interest; the ModelEngine reports the first path it finds to each as a
discovery.

States must be hashable (frozen dataclasses or tuples) so the search can
recognise states it has already visited.
"""

from __future__ import annotations

import pprint
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable, List, Optional, Sequence


class Expectation(str, Enum):
    """How a property's condition is expected to behave across the state space."""

    ALWAYS = "always"  # Discovery is a counterexample: a state where the condition fails
    SOMETIMES = "sometimes"  # Discovery is an example: a state where the condition holds


@dataclass(frozen=True)
class Property:
    """A named condition evaluated against every visited state.

    Attributes:
        expectation: ALWAYS or SOMETIMES.
        name: Unique property name; used as the discovery name.
        condition: Callable taking (model, state) and returning bool.
    """

    expectation: Expectation
    name: str
    condition: Callable[[Any, Any], bool]

    @classmethod
    def always(cls, name: str, condition: Callable[[Any, Any], bool]) -> "Property":
        return cls(Expectation.ALWAYS, name, condition)

    @classmethod
    def sometimes(cls, name: str, condition: Callable[[Any, Any], bool]) -> "Property":
        return cls(Expectation.SOMETIMES, name, condition)

    def is_discovery(self, model: "Model", state: Any) -> bool:
        """True if state is a counterexample (ALWAYS) or an example (SOMETIMES)."""
        holds = bool(self.condition(model, state))
        if self.expectation == Expectation.ALWAYS:
            return not holds
        return holds


class Model(ABC):
    """A state space that can be explored by the ModelEngine."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def init_state(self) -> Hashable:
        """The root state."""
        ...

    @abstractmethod
    def actions(self, state: Any) -> List[Any]:
        """Actions enabled in state, in a deterministic order.

        The order defines the action indices used in paths.
        """
        ...

    @abstractmethod
    def next_state(self, state: Any, action: Any) -> Optional[Hashable]:
        """The state reached by taking action, or None if the action is a no-op."""
        ...

    def properties(self) -> List[Property]:
        return []

    def within_boundary(self, state: Any) -> bool:
        """Whether state belongs to the part of the space that should be explored."""
        return True

    def format_action(self, action: Any) -> str:
        return repr(action)

    def format_state(self, state: Any) -> str:
        return pprint.pformat(state)

    def display_outcome(self, last_state: Any, action: Any) -> Optional[str]:
        """Describe what action did to last_state, if a diff is meaningful."""
        return None

    def as_svg(self, actions: Sequence[Any]) -> Optional[str]:
        """Render a diagram for the path made of actions, if the model has one."""
        return None
