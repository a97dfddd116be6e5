"""
status_poller.py - Periodic status retrieval with change detection.

This module provides a poller that:
- Fetches the engine's aggregate Status on a fixed interval
- Publishes it to a Cell only when it differs from the last published value
- Logs failed polls and keeps going, backing off exponentially (bounded)
- Stops deterministically on teardown (the task is cancelled and awaited)

Only one poll is ever outstanding, so snapshots are applied in arrival order
and never merged.

Usage:
    from explorer.runtime.status_poller import StatusPoller

    poller = StatusPoller(engine, interval_s=2.0)
    poller.status.subscribe(on_status)

    async with poller:
        ...  # polling runs in the background
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .engines.base import ExplorerEngine
from .errors import EngineUnavailable, ExplorerError
from .signals import Cell
from .types import Status

logger = logging.getLogger(__name__)


class StatusPoller:
    """Polls engine status and republishes changes.

    Attributes:
        status: Cell holding the last published Status (None before the first
            successful poll).
        consecutive_failures: Failed polls since the last success.
        last_error: Message of the most recent failure, if any.
        last_poll_at: ISO timestamp of the most recent successful poll.
    """

    def __init__(
        self,
        engine: ExplorerEngine,
        status: Optional[Cell[Optional[Status]]] = None,
        interval_s: float = 2.0,
        timeout_s: float = 5.0,
        max_backoff_s: float = 30.0,
    ):
        """Initialize the poller.

        Args:
            engine: Engine to poll.
            status: Cell to publish into. A new one is created if omitted.
            interval_s: Delay between successful polls.
            timeout_s: Bound on a single status fetch.
            max_backoff_s: Upper bound for the delay after failed polls.
        """
        self._engine = engine
        self.status: Cell[Optional[Status]] = status if status is not None else Cell(None, name="status")
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self.max_backoff_s = max_backoff_s
        self.consecutive_failures = 0
        self.last_error: Optional[str] = None
        self.last_poll_at: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def fetch(self) -> Status:
        """Fetch status once with a bounded wait.

        Raises:
            EngineUnavailable: On engine failure or timeout.
        """
        try:
            return await asyncio.wait_for(self._engine.get_status(), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise EngineUnavailable(f"Engine status did not arrive within {self.timeout_s}s") from e

    async def poll_once(self) -> bool:
        """Fetch status and publish it if it changed.

        Returns:
            True if a new Status was published.

        Raises:
            EngineUnavailable: On engine failure or timeout.
        """
        status = await self.fetch()
        self.last_poll_at = datetime.now(timezone.utc).isoformat()
        changed = self.status.set(status)
        if changed:
            logger.debug("Published status for %s: %s", status.model, status.progress)
        return changed

    def next_delay(self) -> float:
        """Delay before the next poll, given the current failure streak."""
        if self.consecutive_failures == 0:
            return self.interval_s
        return min(self.interval_s * (2 ** self.consecutive_failures), self.max_backoff_s)

    async def run(self) -> None:
        """Poll until cancelled. A failed poll is logged and never fatal."""
        while True:
            try:
                await self.poll_once()
                self.consecutive_failures = 0
                self.last_error = None
            except ExplorerError as e:
                self.consecutive_failures += 1
                self.last_error = str(e)
                logger.warning(
                    "Status poll failed (%d in a row): %s",
                    self.consecutive_failures,
                    e,
                )
            except Exception as e:
                # CancelledError is not an Exception, so stop() still ends the loop
                self.consecutive_failures += 1
                self.last_error = f"{type(e).__name__}: {e}"
                logger.exception(
                    "Unexpected error polling status (%d in a row)",
                    self.consecutive_failures,
                )
            await asyncio.sleep(self.next_delay())

    def start(self) -> None:
        """Start polling in a background task. No-op if already running."""
        if self.running:
            return
        logger.info("Starting status poller (interval %.2fs)", self.interval_s)
        self._task = asyncio.ensure_future(self.run())

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Status poller stopped")

    async def __aenter__(self) -> "StatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
