"""
step_repository.py - Path-keyed resolution and caching of Steps.

Resolving a path:
    1. Session cache hit (StatePath value equality) -> return it
    2. Resolution already in flight for the same path -> join it
    3. Otherwise start one: resolve the parent (recursively, through the
       same cache), query the engine for this path once, and assemble the
       Step with its ancestor chain and child paths

Design Philosophy:
    - At most one outstanding engine request per path
    - The cache is append-only: an entry is never overwritten or evicted,
      so readers never see a rolled-back Step
    - Failures are never cached; the graph may still be growing
    - Every engine query has a bounded wait; a timeout is EngineUnavailable

Usage:
    repo = StepRepository(engine, request_timeout_s=5.0)
    step = await repo.resolve(decode("0/2/1"))
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .engines.base import ExplorerEngine
from .errors import EngineUnavailable, PathNotFound
from .path_codec import encode
from .types import StatePath, Step, StepStub, StepView

logger = logging.getLogger(__name__)


@dataclass
class RepositoryStats:
    """Counters for health reporting."""

    hits: int = 0
    misses: int = 0
    joins: int = 0
    engine_queries: int = 0
    failures: int = 0


class StepRepository:
    """Resolves Steps by path with an append-only session cache.

    Attributes:
        stats: Hit/miss/join/query counters.
    """

    def __init__(self, engine: ExplorerEngine, request_timeout_s: float = 5.0):
        """Initialize the repository.

        Args:
            engine: Engine to query on cache misses.
            request_timeout_s: Bound on a single engine query.
        """
        self._engine = engine
        self._timeout_s = request_timeout_s
        self._cache: Dict[StatePath, Step] = {}
        self._inflight: Dict[StatePath, "asyncio.Task[Step]"] = {}
        self.stats = RepositoryStats()

    def cached(self, path: StatePath) -> Optional[Step]:
        return self._cache.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def resolve(self, path: StatePath) -> Step:
        """Resolve the Step at path.

        Args:
            path: Path to resolve.

        Returns:
            The resolved Step. Repeated calls return the same cached object.

        Raises:
            PathNotFound: If the engine has no node at path (or an ancestor).
            EngineUnavailable: If the engine failed or timed out.
        """
        step = self._cache.get(path)
        if step is not None:
            self.stats.hits += 1
            return step

        task = self._inflight.get(path)
        if task is not None:
            self.stats.joins += 1
            logger.debug("Joining in-flight resolution of %r", encode(path))
        else:
            self.stats.misses += 1
            task = asyncio.ensure_future(self._load(path))
            self._inflight[path] = task
            task.add_done_callback(lambda t, p=path: self._forget(p, t))

        # Shield so a cancelled caller does not cancel the shared resolution
        return await asyncio.shield(task)

    def _forget(self, path: StatePath, task: "asyncio.Task[Step]") -> None:
        if self._inflight.get(path) is task:
            del self._inflight[path]
        if not task.cancelled():
            # Mark the failure as retrieved even when every caller went away
            task.exception()

    async def _load(self, path: StatePath) -> Step:
        parent_step: Optional[Step] = None
        if path.parent is not None:
            try:
                parent_step = await self.resolve(path.parent)
            except PathNotFound as e:
                # A missing ancestor means this path does not exist either
                raise PathNotFound(path) from e

        view = await self._query(path)
        if view is None:
            self.stats.failures += 1
            logger.debug("Engine reports no node at %r", encode(path))
            raise PathNotFound(path)

        stub = StepStub(path=path, action=view.action if parent_step is not None else "", noop=view.noop)
        path_steps = (list(parent_step.path_steps) if parent_step is not None else []) + [stub]
        next_steps = [
            StepStub(path=path.child(index), action=item.action, noop=item.noop)
            for index, item in enumerate(view.next_actions)
        ]
        step = Step(
            path=path,
            action=stub.action,
            state=view.state,
            outcome=view.outcome if parent_step is not None else None,
            svg=view.svg,
            noop=stub.noop,
            next_steps=next_steps,
            path_steps=path_steps,
        )
        # Append-only: keep the first Step stored for a path
        return self._cache.setdefault(path, step)

    async def _query(self, path: StatePath) -> Optional[StepView]:
        self.stats.engine_queries += 1
        try:
            return await asyncio.wait_for(self._engine.get_step(path), timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            self.stats.failures += 1
            logger.warning("Engine query for %r timed out after %.2fs", encode(path), self._timeout_s)
            raise EngineUnavailable(
                f"Engine did not answer for {encode(path)!r} within {self._timeout_s}s", path=path
            ) from e
        except EngineUnavailable:
            self.stats.failures += 1
            raise

    def clear(self) -> None:
        """Drop every cached Step. Only called when the viewer is torn down."""
        self._cache.clear()
