"""
Focus session model — the single piece of mutable state the service owns.

Times are epoch seconds in memory; the persisted record uses the extension's
camelCase keys and epoch milliseconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    INFO = "info"
    REMINDER = "reminder"
    SUCCESS = "success"


@dataclass(frozen=True)
class FocusSession:
    focus_url: str
    duration_minutes: int
    started_at: float
    active: bool = True
    remaining_seconds: int = 0      # cached snapshot, never authoritative

    @property
    def total_seconds(self) -> int:
        return self.duration_minutes * 60

    def elapsed_seconds(self, now: float) -> int:
        return max(0, math.floor(now - self.started_at))

    def remaining_at(self, now: float) -> int:
        return max(0, self.total_seconds - self.elapsed_seconds(now))

    def overdue_seconds(self, now: float) -> float:
        """How far past its end the session is (0 while still running)."""
        return max(0.0, (now - self.started_at) - self.total_seconds)

    def seconds_until_end(self, now: float) -> float:
        return max(0.0, self.total_seconds - (now - self.started_at))

    def snapshot(self, now: float) -> "FocusSession":
        return replace(self, remaining_seconds=self.remaining_at(now))

    # ------------------------------------------------------------------
    # Persisted record
    # ------------------------------------------------------------------

    def to_record(self, now: float) -> Dict[str, Any]:
        return {
            "active": self.active,
            "focusUrl": self.focus_url,
            "durationMinutes": self.duration_minutes,
            "startedAt": int(round(self.started_at * 1000)),
            "remainingSeconds": self.remaining_at(now),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "FocusSession":
        """Decode a stored record. Raises ValueError if it is unusable."""
        try:
            focus_url = record["focusUrl"]
            duration = _whole_minutes(record["durationMinutes"])
            started_at = float(record["startedAt"]) / 1000.0
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"malformed session record: {exc!r}") from exc
        if not isinstance(focus_url, str) or not focus_url or duration <= 0:
            raise ValueError("malformed session record: bad focusUrl or duration")
        return cls(
            focus_url=focus_url,
            duration_minutes=duration,
            started_at=started_at,
            active=bool(record.get("active", False)),
            remaining_seconds=int(record.get("remainingSeconds", 0) or 0),
        )


def _whole_minutes(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"durationMinutes must be a number, got {value!r}")
    minutes = int(value)
    if minutes != value:
        raise ValueError(f"durationMinutes must be whole, got {value!r}")
    return minutes
