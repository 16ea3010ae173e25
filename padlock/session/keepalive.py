"""
Keep-Alive Scheduler — periodic heartbeat while a focus session is live.

Each tick calls back into the lifecycle manager, which re-persists the
session. When the callback reports that no session is live any more the
scheduler stops itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def running_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class KeepAliveScheduler:

    def __init__(self, tick: Callable[[], bool], interval_s: float = 20.0):
        self._tick = tick
        self.interval_s = interval_s
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking; an already running ticker is replaced, not stacked."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not running_task():
            task.cancel()

    async def _run(self) -> None:
        me = running_task()
        while True:
            await asyncio.sleep(self.interval_s)
            if self._task is not me:
                return
            try:
                alive = self._tick()
            except Exception:
                logger.exception("Keep-alive tick failed")
                alive = True
            if not alive:
                logger.debug("Keep-alive stopping, no active session")
                if self._task is me:
                    self._task = None
                return
