"""
Session Lifecycle Manager — sole owner of the focus session.

Two states: Idle (no session) and Active (one session counting down).
Every externally triggered operation starts with reconcile(), which
re-derives the live state from the store and the wall clock, so the
manager is correct even if the process was stopped and restarted at any
point. Timers never outlive the session they were armed for: each one is
tagged with the session generation and does nothing if the tag is stale.

Usage:
    manager = SessionLifecycleManager(SessionStore(path), bridge)
    manager.reconcile()                       # on process wake-up
    manager.start("https://docs.example.com/page", 25)
    manager.on_tab_event(TabEvent.UPDATED, tab_id, url)
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Set

from ..enforcement.engine import EnforcementEngine, Verdict
from ..enforcement.rules import NEW_TAB_URL, hostname, is_valid_focus_url
from ..errors import (
    DeliveryFailure,
    InvalidSessionRequest,
    PersistenceUnavailable,
    SessionAlreadyActive,
)
from ..host.tabs import TabEvent
from ..notifications.dispatcher import NotificationDispatcher
from ..settings import get_settings
from .keepalive import KeepAliveScheduler, running_task
from .models import FocusSession, Severity
from .store import SessionStore

logger = logging.getLogger(__name__)

NAVIGATION_BLOCKED = "Navigation blocked - Focus mode is active! Staying on focus tab."
RETURNING_TO_FOCUS = "Focus mode active! Returning to focus tab..."
WELCOME_BACK = "Welcome back! Stay focused on your task."
SESSION_COMPLETED = "\U0001F389 Focus session completed! Great job staying focused!"


class Clock:
    """Wall-clock time source."""

    def now(self) -> float:
        return time.time()


class StartPolicy(str, Enum):
    REPLACE = "replace"
    REJECT = "reject"


class SessionLifecycleManager:

    def __init__(
        self,
        store: SessionStore,
        host,
        clock: Optional[Clock] = None,
        keepalive_interval_s: float = 20.0,
        redirect_delay_s: float = 0.5,
    ):
        self._store = store
        self._host = host
        self._clock = clock or Clock()
        self._redirect_delay_s = redirect_delay_s

        self.notifier = NotificationDispatcher(host)
        self.enforcer = EnforcementEngine(self.notifier, self.return_to_focus_tab)
        self.keepalive = KeepAliveScheduler(self._heartbeat, keepalive_interval_s)

        self._session: Optional[FocusSession] = None
        self._generation = 0
        self._expiry_task: Optional[asyncio.Task] = None
        self._redirects: Set[asyncio.Task] = set()
        self._listeners: List[Callable[[Optional[FocusSession]], None]] = []

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def expiration_armed(self) -> bool:
        return self._expiry_task is not None and not self._expiry_task.done()

    @property
    def pending_redirects(self) -> int:
        return sum(1 for t in self._redirects if not t.done())

    def snapshot(self) -> Optional[FocusSession]:
        if self._session is None:
            return None
        return self._session.snapshot(self._clock.now())

    def current_remaining(self) -> int:
        """Seconds left in the live session, recomputed from the clock."""
        if self._session is None:
            return 0
        return self._session.remaining_at(self._clock.now())

    def register_listener(self, fn: Callable[[Optional[FocusSession]], None]) -> None:
        """Register a callback(snapshot) called after every transition."""
        self._listeners.append(fn)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, focus_url: str, duration_minutes: int) -> FocusSession:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
            raise InvalidSessionRequest(f"duration must be an integer, got {duration_minutes!r}")
        if duration_minutes <= 0:
            raise InvalidSessionRequest(f"duration must be positive, got {duration_minutes}")
        if not is_valid_focus_url(focus_url):
            raise InvalidSessionRequest(f"cannot lock onto {focus_url!r}")

        self.reconcile()
        if self._session is not None:
            if StartPolicy(get_settings()["start_policy"]) is StartPolicy.REJECT:
                raise SessionAlreadyActive(
                    f"a session on {hostname(self._session.focus_url)} is already active"
                )
            logger.info("Replacing focus session on %s", hostname(self._session.focus_url))
            self._end(notify=False, publish=False)

        now = self._clock.now()
        session = FocusSession(
            focus_url=focus_url,
            duration_minutes=duration_minutes,
            started_at=now,
            remaining_seconds=duration_minutes * 60,
        )
        self._persist(session)
        self._begin(session)
        logger.info("Focus session started on %s for %d min", hostname(focus_url), duration_minutes)
        self._publish()
        return session.snapshot(now)

    def stop(self) -> bool:
        """End the live session. Returns False if there was none."""
        self.reconcile()
        was_active = self._session is not None
        self._end(notify=False)
        if was_active:
            logger.info("Focus session stopped")
        return was_active

    def reconcile(self) -> Optional[FocusSession]:
        """
        Bring the in-memory state in line with the store and the clock.
        Safe to call any number of times.
        """
        now = self._clock.now()

        if self._session is not None:
            if self._session.remaining_at(now) > 0:
                return self._session.snapshot(now)
            logger.info("Focus session elapsed without its timer firing, ending it")
            self._end(notify=self._within_grace(self._session, now))
            return None

        try:
            record = self._store.load()
        except PersistenceUnavailable as exc:
            logger.warning("Cannot read stored session, staying idle: %s", exc)
            self._clear_store()
            return None
        if record is None or not record.get("active"):
            return None

        try:
            session = FocusSession.from_record(record)
        except ValueError as exc:
            logger.warning("Discarding unreadable stored session: %s", exc)
            self._clear_store()
            return None

        if session.remaining_at(now) <= 0:
            logger.info("Restored session has expired, ending it")
            self._end(notify=self._within_grace(session, now))
            return None

        logger.info("Restoring active focus session on %s", hostname(session.focus_url))
        self._begin(session)
        self._publish()
        return session.snapshot(now)

    def shutdown(self) -> None:
        """Drop timers and in-memory state, leaving the stored session intact."""
        self._generation += 1
        self._session = None
        self._cancel_timers()
        self.notifier.cancel_all()

    # ------------------------------------------------------------------
    # Tab events
    # ------------------------------------------------------------------

    def on_tab_event(self, event: TabEvent, tab_id: int, url: Optional[str]) -> Optional[Verdict]:
        """Run enforcement for one tab event; None if there was nothing to check."""
        self.reconcile()
        if self._session is None or not url or event is TabEvent.REMOVED:
            return None
        if event is TabEvent.CREATED and url == NEW_TAB_URL:
            return None
        message = RETURNING_TO_FOCUS if event is TabEvent.ACTIVATED else NAVIGATION_BLOCKED
        verdict = self.enforcer.enforce(url, self._session, message)
        logger.debug("Tab %s %s -> %s", tab_id, event.value, verdict.value)
        return verdict

    def return_to_focus_tab(self) -> None:
        """Schedule a switch back to the focus tab, reopening it if it was closed."""
        if self._session is None:
            return
        task = asyncio.get_running_loop().create_task(self._redirect_after(self._generation))
        self._redirects.add(task)
        task.add_done_callback(self._redirects.discard)

    async def _redirect_after(self, tag: int) -> None:
        await asyncio.sleep(self._redirect_delay_s)
        if not self._is_live(tag):
            return
        session = self._session
        try:
            tabs = self._host.find_tabs(hostname(session.focus_url))
            if tabs:
                await self._host.activate_tab(tabs[0].id)
            else:
                await self._host.create_tab(session.focus_url)
        except DeliveryFailure as exc:
            logger.info("Could not return to focus tab: %s", exc)
            return
        if self._is_live(tag):
            self.notifier.notify(WELCOME_BACK, Severity.REMINDER)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(self, session: FocusSession) -> None:
        self._cancel_timers()
        self._generation += 1
        self._session = session
        delay = session.seconds_until_end(self._clock.now())
        self._expiry_task = asyncio.get_running_loop().create_task(
            self._expire_after(delay, self._generation)
        )
        self.keepalive.start()

    def _end(self, notify: bool, publish: bool = True) -> None:
        self._generation += 1
        self._session = None
        self._cancel_timers()
        self._clear_store()
        if notify:
            self.notifier.notify(SESSION_COMPLETED, Severity.SUCCESS)
        if publish:
            self._publish()

    async def _expire_after(self, delay: float, tag: int) -> None:
        await asyncio.sleep(delay)
        self._on_expired(tag)

    def _on_expired(self, tag: int) -> None:
        if tag != self._generation or self._session is None:
            logger.debug("Ignoring stale expiration timer (tag %d)", tag)
            return
        logger.info("Focus session on %s completed", hostname(self._session.focus_url))
        self._end(notify=True)

    def _heartbeat(self) -> bool:
        self.reconcile()
        if self._session is None:
            return False
        logger.debug("Keep-alive ping, session active")
        self._persist(self._session, ping=True)
        return True

    def _is_live(self, tag: int) -> bool:
        return (
            tag == self._generation
            and self._session is not None
            and self._session.remaining_at(self._clock.now()) > 0
        )

    def _within_grace(self, session: FocusSession, now: float) -> bool:
        grace = float(get_settings()["expiry_grace_seconds"])
        return grace > 0 and session.overdue_seconds(now) <= grace

    def _cancel_timers(self) -> None:
        task, self._expiry_task = self._expiry_task, None
        if task is not None and not task.done() and task is not running_task():
            task.cancel()
        for redirect in list(self._redirects):
            redirect.cancel()
        self._redirects.clear()
        self.keepalive.stop()

    def _persist(self, session: FocusSession, ping: bool = False) -> None:
        now = self._clock.now()
        try:
            self._store.save(session.to_record(now), ping_at=now if ping else None)
        except PersistenceUnavailable as exc:
            logger.warning("Session not persisted, it will not survive a restart: %s", exc)

    def _clear_store(self) -> None:
        try:
            self._store.clear()
        except PersistenceUnavailable as exc:
            logger.warning("Could not clear stored session: %s", exc)

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
