"""
Session Store — durable key-value mirror of the one active session.

The file is a flat JSON object, the same shape the extension keeps in its
local storage. Only the lifecycle manager writes to it.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..errors import PersistenceUnavailable

logger = logging.getLogger(__name__)

SESSION_KEY = "focusSession"
PING_KEY = "lastPing"


class SessionStore:

    def __init__(self, path: Path):
        self.path = Path(path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored session record, or None if there is none."""
        record = self._read().get(SESSION_KEY)
        return record if isinstance(record, dict) else None

    def save(self, record: Dict[str, Any], ping_at: Optional[float] = None) -> None:
        data, _ = self._read_for_update()
        data[SESSION_KEY] = record
        if ping_at is not None:
            data[PING_KEY] = int(ping_at * 1000)
        self._write(data)

    def clear(self) -> None:
        data, intact = self._read_for_update()
        if SESSION_KEY in data or not intact:
            data.pop(SESSION_KEY, None)
            self._write(data)

    def last_ping(self) -> Optional[int]:
        return self._read().get(PING_KEY)

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            raise PersistenceUnavailable(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceUnavailable(f"unexpected content in {self.path}")
        return data

    def _read_for_update(self) -> Tuple[Dict[str, Any], bool]:
        """
        Current contents before a write, and whether they decoded cleanly.
        Undecodable content is dropped so the write replaces it; a file that
        cannot be read at all still raises.
        """
        if not self.path.exists():
            return {}, True
        try:
            data = json.loads(self.path.read_text())
        except OSError as exc:
            raise PersistenceUnavailable(f"cannot read {self.path}: {exc}") from exc
        except ValueError as exc:
            logger.warning("Overwriting undecodable store %s: %s", self.path, exc)
            return {}, False
        if not isinstance(data, dict):
            logger.warning("Overwriting unexpected content in %s", self.path)
            return {}, False
        return data, True

    def _write(self, data: Dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2))
            os.replace(tmp, self.path)
        except OSError as exc:
            raise PersistenceUnavailable(f"cannot write {self.path}: {exc}") from exc
