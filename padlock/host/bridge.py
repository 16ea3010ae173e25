"""
Extension Bridge — the service's hands inside the browser.

The extension's background page holds one WebSocket open to the service
(see api/routers/extension.py). Over it the service sends commands
(activate a tab, open a tab, forward a message to a tab's content script)
and waits for the matching reply. The same socket carries tab events and
popup requests the other way.

Anything that needs to touch the browser goes through the methods below:

    find_tabs(host) / active_tab()        read the TabRegistry
    activate_tab(id) / create_tab(url)    commands, raise DeliveryFailure
    send_message(id, payload)             command, raises DeliveryFailure
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect

from ..errors import DeliveryFailure
from .tabs import Tab, TabRegistry

logger = logging.getLogger(__name__)


class ExtensionBridge:

    def __init__(self, tabs: Optional[TabRegistry] = None, timeout_s: float = 2.0):
        self.tabs = tabs or TabRegistry()
        self._timeout_s = timeout_s
        self._socket: Optional[WebSocket] = None
        self._pending: Dict[str, asyncio.Future] = {}

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._socket is not None

    def attach(self, websocket: WebSocket) -> None:
        if self._socket is not None:
            logger.info("Replacing existing extension connection")
        self._socket = websocket

    def detach(self, websocket: WebSocket) -> None:
        if self._socket is not websocket:
            return
        self._socket = None
        for fut in self._pending.values():
            if not fut.done():
                fut.set_exception(DeliveryFailure("extension disconnected"))
        self._pending.clear()

    def resolve(self, reply: Dict[str, Any]) -> None:
        """Hand a reply frame to the request waiting for it."""
        reply_to = reply.get("replyTo")
        if not isinstance(reply_to, str):
            logger.debug("Ignoring reply with unusable replyTo %r", reply_to)
            return
        fut = self._pending.get(reply_to)
        if fut is not None and not fut.done():
            fut.set_result(reply)

    # ------------------------------------------------------------------
    # Request / reply
    # ------------------------------------------------------------------

    async def request(self, action: str, **fields: Any) -> Dict[str, Any]:
        socket = self._socket
        if socket is None:
            raise DeliveryFailure(f"{action}: no extension connected")

        request_id = uuid.uuid4().hex
        fut = asyncio.get_running_loop().create_future()
        self._pending[request_id] = fut
        try:
            await socket.send_json({"id": request_id, "action": action, **fields})
            reply = await asyncio.wait_for(fut, self._timeout_s)
        except asyncio.TimeoutError as exc:
            raise DeliveryFailure(f"{action}: no reply within {self._timeout_s}s") from exc
        except (RuntimeError, OSError, WebSocketDisconnect) as exc:
            raise DeliveryFailure(f"{action}: send failed ({exc!r})") from exc
        finally:
            self._pending.pop(request_id, None)

        if not reply.get("success", False):
            raise DeliveryFailure(f"{action}: {reply.get('error') or 'rejected by extension'}")
        return reply

    async def broadcast(self, event: str, **fields: Any) -> bool:
        """Push an unsolicited event frame; no reply is expected."""
        socket = self._socket
        if socket is None:
            return False
        try:
            await socket.send_json({"event": event, **fields})
        except (RuntimeError, OSError, WebSocketDisconnect) as exc:
            logger.info("Broadcast of %s failed: %r", event, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Tab host operations
    # ------------------------------------------------------------------

    def active_tab(self) -> Optional[Tab]:
        return self.tabs.active_tab()

    def find_tabs(self, host: str) -> List[Tab]:
        return self.tabs.find_by_hostname(host)

    async def activate_tab(self, tab_id: int) -> None:
        await self.request("activateTab", tabId=tab_id)
        self.tabs.activate(tab_id)

    async def create_tab(self, url: str) -> Optional[Tab]:
        reply = await self.request("createTab", url=url, active=True)
        tab_id = reply.get("tabId")
        if tab_id is None:
            return None
        self.tabs.upsert(tab_id, url=url, window_id=reply.get("windowId"))
        return self.tabs.activate(tab_id)

    async def send_message(self, tab_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("sendMessage", tabId=tab_id, message=payload)
