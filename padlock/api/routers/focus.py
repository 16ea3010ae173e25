"""
/focus — read and control the focus session.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ...api.protocol import session_out, start_focus
from ...api.schemas import FocusSessionOut, StartFocusRequest
from ...errors import InvalidSessionRequest, SessionAlreadyActive

router = APIRouter(prefix="/focus", tags=["focus"])


def _get_manager(request: Request):
    return request.app.state.manager


@router.get("", response_model=FocusSessionOut)
async def get_focus(manager=Depends(_get_manager)):
    """Return the reconciled session snapshot."""
    return session_out(manager.reconcile())


@router.post("/start", response_model=FocusSessionOut)
async def post_start(req: StartFocusRequest, manager=Depends(_get_manager)):
    try:
        session = start_focus(manager, req)
    except SessionAlreadyActive as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except InvalidSessionRequest as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return session_out(session)


@router.post("/stop", response_model=FocusSessionOut)
async def post_stop(manager=Depends(_get_manager)):
    manager.stop()
    return session_out(None)
