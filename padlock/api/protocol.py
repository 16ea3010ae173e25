"""
Message protocol shared by the HTTP routers and the extension WebSocket.

    startFocus{focusUrl, durationMinutes} -> {success}
    endFocus{}                            -> {success}
    testNotification{}                    -> {success}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..enforcement.engine import Verdict
from ..errors import InvalidSessionRequest
from ..host.bridge import ExtensionBridge
from ..host.tabs import TabEvent
from ..session.lifecycle import SessionLifecycleManager
from ..session.models import FocusSession, Severity
from ..settings import get_settings
from .schemas import FocusSessionOut, MessageOut, StartFocusRequest, TabEventIn

logger = logging.getLogger(__name__)

TEST_NOTIFICATION = "Test notification from Padlock!"


def session_out(session: Optional[FocusSession]) -> FocusSessionOut:
    if session is None:
        return FocusSessionOut(active=False)
    return FocusSessionOut(
        active=session.active,
        focus_url=session.focus_url,
        duration_minutes=session.duration_minutes,
        started_at=int(round(session.started_at * 1000)),
        remaining_seconds=session.remaining_seconds,
    )


def start_focus(manager: SessionLifecycleManager, req: StartFocusRequest) -> FocusSession:
    duration = req.duration_minutes
    if duration is None:
        duration = int(get_settings()["default_duration_minutes"])
    return manager.start(req.focus_url, duration)


def handle_message(
    manager: SessionLifecycleManager,
    action: str,
    data: Optional[Dict[str, Any]] = None,
) -> MessageOut:
    data = data or {}
    if action == "startFocus":
        try:
            start_focus(manager, StartFocusRequest.model_validate(data))
        except ValidationError as exc:
            return MessageOut(success=False, error=f"invalid startFocus payload: {exc.error_count()} error(s)")
        except InvalidSessionRequest as exc:
            logger.info("Rejected start request: %s", exc)
            return MessageOut(success=False, error=str(exc))
        return MessageOut(success=True)

    if action == "endFocus":
        manager.stop()
        return MessageOut(success=True)

    if action == "testNotification":
        logger.info("Testing notification...")
        manager.notifier.notify(TEST_NOTIFICATION, Severity.INFO)
        return MessageOut(success=True)

    return MessageOut(success=False, error=f"unknown action: {action!r}")


def handle_tab_event(
    manager: SessionLifecycleManager,
    bridge: ExtensionBridge,
    event: TabEventIn,
) -> Optional[Verdict]:
    kind = TabEvent(event.event)
    tab = bridge.tabs.apply(kind, event.tab_id, url=event.url, window_id=event.window_id)
    url = event.url or (tab.url if tab is not None else None)
    return manager.on_tab_event(kind, event.tab_id, url)
