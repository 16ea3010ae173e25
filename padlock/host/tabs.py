"""
Browser tab model — the service's view of the host's tabs, rebuilt from the
tab events the extension reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..enforcement.rules import hostname


class TabEvent(str, Enum):
    CREATED = "tabCreated"
    UPDATED = "tabUpdated"
    ACTIVATED = "tabActivated"
    REMOVED = "tabRemoved"


@dataclass
class Tab:
    id: int
    url: str = ""
    window_id: int = 0
    active: bool = False


class TabRegistry:
    """Known tabs plus the currently focused window."""

    def __init__(self):
        self._tabs: Dict[int, Tab] = {}
        self._focused_window: Optional[int] = None

    def get(self, tab_id: int) -> Optional[Tab]:
        return self._tabs.get(tab_id)

    def all_tabs(self) -> List[Tab]:
        return list(self._tabs.values())

    def upsert(self, tab_id: int, url: Optional[str] = None,
               window_id: Optional[int] = None) -> Tab:
        tab = self._tabs.get(tab_id)
        if tab is None:
            tab = Tab(id=tab_id, window_id=window_id if window_id is not None else 0)
            self._tabs[tab_id] = tab
        if url:
            tab.url = url
        if window_id is not None:
            tab.window_id = window_id
        return tab

    def remove(self, tab_id: int) -> None:
        self._tabs.pop(tab_id, None)

    def activate(self, tab_id: int, window_id: Optional[int] = None) -> Tab:
        tab = self.upsert(tab_id, window_id=window_id)
        for other in self._tabs.values():
            if other.window_id == tab.window_id:
                other.active = other.id == tab_id
        self._focused_window = tab.window_id
        return tab

    def apply(self, event: TabEvent, tab_id: int, url: Optional[str] = None,
              window_id: Optional[int] = None) -> Optional[Tab]:
        """Fold one reported tab event into the registry."""
        if event is TabEvent.REMOVED:
            self.remove(tab_id)
            return None
        if event is TabEvent.ACTIVATED:
            tab = self.activate(tab_id, window_id)
            if url:
                tab.url = url
            return tab
        return self.upsert(tab_id, url=url, window_id=window_id)

    def active_tab(self) -> Optional[Tab]:
        """The active tab of the focused window."""
        for tab in self._tabs.values():
            if tab.active and (self._focused_window is None
                               or tab.window_id == self._focused_window):
                return tab
        return None

    def find_by_hostname(self, host: str) -> List[Tab]:
        return [t for t in self._tabs.values() if t.url and hostname(t.url) == host]
