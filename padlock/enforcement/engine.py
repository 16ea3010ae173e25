"""
Enforcement Engine — decides whether a navigation target is allowed while
a focus session is live, and reacts to a denial.

The decision itself is a pure function of (url, session). The reaction is
a notification plus a request to bring the focus tab back; both are
best-effort and safe to trigger repeatedly for the same navigation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from ..notifications.dispatcher import NotificationDispatcher
from ..session.models import FocusSession, Severity
from .rules import hostname, is_internal_url

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def decide(candidate_url: str, session: Optional[FocusSession]) -> Verdict:
    if session is None or not session.active:
        return Verdict.ALLOW
    if is_internal_url(candidate_url):
        return Verdict.ALLOW
    if hostname(candidate_url) == hostname(session.focus_url):
        return Verdict.ALLOW
    return Verdict.DENY


class EnforcementEngine:

    def __init__(
        self,
        notifier: NotificationDispatcher,
        return_to_focus: Callable[[], None],
    ):
        self._notifier = notifier
        self._return_to_focus = return_to_focus

    def enforce(
        self,
        candidate_url: str,
        session: Optional[FocusSession],
        message: str,
    ) -> Verdict:
        """Decide, and on denial notify the user and request a redirect."""
        verdict = decide(candidate_url, session)
        if verdict is Verdict.DENY:
            logger.info(
                "Blocked navigation to %s (focus domain %s)",
                hostname(candidate_url), hostname(session.focus_url),
            )
            self._notifier.notify(message, Severity.INFO)
            self._return_to_focus()
        return verdict
