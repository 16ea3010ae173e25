"""
/messages — request/response message protocol used by the popup.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ...api.protocol import handle_message
from ...api.schemas import MessageIn, MessageOut

router = APIRouter(prefix="/messages", tags=["messages"])


def _get_manager(request: Request):
    return request.app.state.manager


@router.post("", response_model=MessageOut)
async def post_message(message: MessageIn, manager=Depends(_get_manager)):
    return handle_message(manager, message.action, message.data)
