"""
Notification Dispatcher — fire-and-forget on-screen messages.

The message goes to whichever tab is focused when it is sent, not to the
focus tab. Delivery is best-effort: a page without a content script (an
internal page, a tab still loading) simply misses it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Set

from ..errors import DeliveryFailure
from ..session.models import Severity

logger = logging.getLogger(__name__)


class NotificationDispatcher:

    def __init__(self, host):
        self._host = host
        self._pending: Set[asyncio.Task] = set()

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Queue *message* for delivery and return immediately."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping notification %r", message)
            return
        task = loop.create_task(self.deliver(message, severity))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, message: str, severity: Severity = Severity.INFO) -> bool:
        tab = self._host.active_tab()
        if tab is None:
            logger.info("No active tab found for notification %r", message)
            return False

        payload = {"action": "showNotification", "message": message, "type": Severity(severity).value}
        try:
            await self._host.send_message(tab.id, payload)
        except DeliveryFailure as exc:
            logger.info("Failed to send notification to tab %s (%s): %s", tab.id, tab.url, exc)
            return False
        logger.debug("Notification sent to tab %s: %r", tab.id, message)
        return True

    async def drain(self) -> None:
        """Wait for every queued delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._pending):
            task.cancel()
