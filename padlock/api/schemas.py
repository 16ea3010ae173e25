"""
Pydantic schemas for the local focus API.

Field aliases follow the extension's camelCase wire format.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ── Focus session ─────────────────────────────────────────────────────────

class StartFocusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    focus_url: str = Field(..., alias="focusUrl")
    duration_minutes: Optional[int] = Field(None, alias="durationMinutes")


class FocusSessionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active: bool
    focus_url: Optional[str] = Field(None, alias="focusUrl")
    duration_minutes: Optional[int] = Field(None, alias="durationMinutes")
    started_at: Optional[int] = Field(None, alias="startedAt", description="epoch ms")
    remaining_seconds: int = Field(0, alias="remainingSeconds")


# ── Message protocol ──────────────────────────────────────────────────────

class MessageIn(BaseModel):
    action: Literal["startFocus", "endFocus", "testNotification"]
    data: Dict[str, Any] = Field(default_factory=dict)


class MessageOut(BaseModel):
    success: bool
    error: Optional[str] = None


# ── Tab events ────────────────────────────────────────────────────────────

class TabEventIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: Literal["tabCreated", "tabUpdated", "tabActivated", "tabRemoved"]
    tab_id: int = Field(..., alias="tabId")
    url: Optional[str] = None
    window_id: Optional[int] = Field(None, alias="windowId")


class TabEventOut(BaseModel):
    verdict: Optional[str] = Field(None, description="allow | deny | null when not checked")
