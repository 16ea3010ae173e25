"""
Central configuration for the Padlock focus service.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    session_file: str = "session.json"
    settings_file: str = "settings.json"

    # Timers
    keepalive_interval_s: float = 20.0      # heartbeat while a session is active
    redirect_delay_ms: int = 500            # pause before returning to the focus tab

    # Extension bridge
    bridge_timeout_s: float = 2.0           # how long to wait for a command reply

    log_level: str = "info"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def session_path(self) -> Path:
        return self.data_dir / self.session_file

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (PADLOCK_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"PADLOCK_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, type(getattr(cfg, k))(os.environ[env_key]))
        cfg.data_dir = Path(cfg.data_dir)
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        return cfg


# Module-level singleton
config = Config.load()
