"""
Error taxonomy for the focus service.

None of these are fatal to the lifecycle manager: invalid requests are
rejected before any state changes, persistence and delivery failures are
logged and absorbed where they occur.
"""

from __future__ import annotations


class PadlockError(Exception):
    """Base class for all focus-service errors."""


class InvalidSessionRequest(PadlockError):
    """A start request carried a bad duration or focus URL."""


class SessionAlreadyActive(InvalidSessionRequest):
    """A start request arrived while a session is live and the policy rejects it."""


class PersistenceUnavailable(PadlockError):
    """The session store could not be read or written."""


class DeliveryFailure(PadlockError):
    """A command or notification did not reach the browser extension."""
