"""
/tabs — tab lifecycle events reported by the extension over HTTP.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ...api.protocol import handle_tab_event
from ...api.schemas import TabEventIn, TabEventOut

router = APIRouter(prefix="/tabs", tags=["tabs"])


def _get_manager(request: Request):
    return request.app.state.manager


def _get_bridge(request: Request):
    return request.app.state.bridge


@router.post("/events", response_model=TabEventOut, status_code=status.HTTP_202_ACCEPTED)
async def post_tab_event(
    event: TabEventIn,
    manager=Depends(_get_manager),
    bridge=Depends(_get_bridge),
):
    verdict = handle_tab_event(manager, bridge, event)
    return TabEventOut(verdict=verdict.value if verdict else None)
