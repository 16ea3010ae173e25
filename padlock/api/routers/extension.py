"""
/extension/ws — the browser extension's persistent connection.

Incoming frames are one of:
    {"replyTo": id, "success": ...}               reply to a bridge command
    {"event": "tabUpdated", "tabId": 7, ...}      tab lifecycle event
    {"id": id, "action": "startFocus", "data": {...}}   popup request
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ...api.protocol import handle_message, handle_tab_event
from ...api.schemas import TabEventIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extension", tags=["extension"])


@router.websocket("/ws")
async def extension_websocket(websocket: WebSocket):
    manager = websocket.app.state.manager
    bridge = websocket.app.state.bridge

    await websocket.accept()
    bridge.attach(websocket)
    logger.info("Extension connected")
    try:
        while True:
            text = await websocket.receive_text()
            try:
                frame = json.loads(text)
            except ValueError as exc:
                logger.info("Ignoring undecodable frame: %s", exc)
                continue
            if not isinstance(frame, dict):
                continue

            if "replyTo" in frame:
                bridge.resolve(frame)

            elif "event" in frame:
                try:
                    event = TabEventIn.model_validate(frame)
                except ValidationError as exc:
                    logger.info("Ignoring malformed tab event: %s", exc)
                    continue
                handle_tab_event(manager, bridge, event)

            elif "action" in frame:
                reply = handle_message(manager, frame["action"], frame.get("data"))
                await websocket.send_json({"replyTo": frame.get("id"), **reply.model_dump()})
    except WebSocketDisconnect:
        pass
    finally:
        bridge.detach(websocket)
        logger.info("Extension disconnected")
