"""
base.py - Abstract base class for exploration engines.

This module defines the read-only query contract the viewer consumes:
- get_status(): aggregate status, safe to poll
- get_step(path): per-node payload, or None if no node exists at the path

Engines do NOT own:
- Caching or request de-duplication (that's the StepRepository's job)
- Ancestor/child path bookkeeping (also the StepRepository)
- Polling cadence (that's the StatusPoller's job)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from explorer.runtime.types import StatePath, Status, StepView


class ExplorerEngine(ABC):
    """Abstract base class for state-space exploration engines.

    Implementations must return equal results for repeated get_step() calls
    on already-discovered nodes: from the viewer's perspective the graph only
    grows.
    """

    @property
    @abstractmethod
    def engine_id(self) -> str:
        """Unique identifier for this engine (e.g., 'http', 'model')."""
        ...

    @abstractmethod
    async def get_status(self) -> Status:
        """Return the current aggregate status.

        Raises:
            EngineUnavailable: If the engine cannot be reached.
        """
        ...

    @abstractmethod
    async def get_step(self, path: StatePath) -> Optional[StepView]:
        """Return the payload for the node at path, or None if not found.

        Raises:
            EngineUnavailable: If the engine cannot be reached.
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
        return None
