"""
User-tunable runtime settings — persisted to data/settings.json.

Import get_settings() anywhere in the service to read current values.
Import update_settings(patch) to mutate and save.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .config import config

logger = logging.getLogger(__name__)

_FILE: Path = config.data_dir / config.settings_file

DEFAULTS: dict[str, Any] = {
    "start_policy": "replace",          # "replace" | "reject" a start while active
    "expiry_grace_seconds": 5,          # late expiry within this margin still notifies
    "default_duration_minutes": 25,
}

_current: dict[str, Any] = {}

# keys whose value must be one of a fixed set
CHOICES: dict[str, tuple[str, ...]] = {
    "start_policy": ("replace", "reject"),
}


def _coerce(key: str, value: Any) -> Any:
    # coerce to the same type as the default
    coerced = type(DEFAULTS[key])(value)
    if key in CHOICES and coerced not in CHOICES[key]:
        raise ValueError(f"{key} must be one of {CHOICES[key]}, got {value!r}")
    return coerced


def _load() -> None:
    global _current
    _current = dict(DEFAULTS)
    if not _FILE.exists():
        return
    try:
        saved = json.loads(_FILE.read_text())
        items = saved.items()
    except (OSError, ValueError, AttributeError) as exc:
        logger.warning("Ignoring malformed settings file %s: %s", _FILE, exc)
        return
    for k, v in items:
        if k not in DEFAULTS:
            continue
        try:
            _current[k] = _coerce(k, v)
        except (ValueError, TypeError) as exc:
            logger.warning("Ignoring setting %s in %s, using default: %s", k, _FILE, exc)


def get_settings() -> dict[str, Any]:
    """Return a copy of the current settings dict."""
    if not _current:
        _load()
    return dict(_current)


def update_settings(patch: dict[str, Any]) -> dict[str, Any]:
    """Apply *patch* (unknown keys ignored), persist to disk, return full settings.

    Raises ValueError for a value outside a key's allowed choices.
    """
    if not _current:
        _load()
    updated = {k: _coerce(k, v) for k, v in patch.items() if k in DEFAULTS}
    _current.update(updated)
    _FILE.parent.mkdir(parents=True, exist_ok=True)
    _FILE.write_text(json.dumps(_current, indent=2))
    return dict(_current)


# Eagerly load on import
_load()
