"""Head pointer polling."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from legit_editor.exceptions import StoreReadError

logger = logging.getLogger(__name__)

HeadReader = Callable[[], Awaitable[str]]
HeadListener = Callable[[str], Awaitable[None]]


class SyncPoller:
    """Samples a branch head on a fixed cadence and reports changes.

    Runs as a task on the current event loop. Each tick reads the head,
    compares it by value with the last observed head and, when it differs,
    records it and awaits ``on_change`` with the new oid. Ticks run one at a
    time, so changes are reported in the order they were read. Read failures
    are ignored. After ``stop()`` any tick still in flight is discarded.
    """

    def __init__(
        self,
        read_head: HeadReader,
        on_change: HeadListener,
        interval: float = 1.0,
    ):
        self.read_head = read_head
        self.on_change = on_change
        self.interval = interval
        self.observed_head: Optional[str] = None
        self.is_polling = False
        self._task: Optional[asyncio.Task] = None
        self._tick_lock = asyncio.Lock()
        # Bumped by stop(); ticks begun under an older run are dropped
        self._run = 0

    async def tick(self) -> Optional[str]:
        """Sample the head once; returns the new oid when it changed."""
        run = self._run
        async with self._tick_lock:
            if run != self._run:
                return None
            try:
                oid = (await self.read_head()).strip()
            except StoreReadError as e:
                logger.debug("Head read failed: %s", e)
                return None

            if run != self._run:
                # Stopped while the read was in flight
                return None
            if not oid or oid == self.observed_head:
                return None

            logger.debug("Head moved %s -> %s", self.observed_head, oid)
            self.observed_head = oid
            await self.on_change(oid)
            return oid

    def reset(self) -> None:
        """Forget the observed head so the next tick reports it again."""
        self.observed_head = None

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self.is_polling:
            return
        self.is_polling = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        self.is_polling = False
        self._run += 1
        task, self._task = self._task, None
        if task is None:
            return

        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self) -> None:
        while self.is_polling:
            try:
                await self.tick()
            except Exception:
                logger.exception("Head change handler failed")
            await asyncio.sleep(self.interval)
