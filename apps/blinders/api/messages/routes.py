from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from blinders.api.dependencies import get_current_user
from blinders.core.dependencies import get_message_store, get_room_store
from blinders.schemas.messages import MessagePage
from blinders.schemas.users import UserSnapshot
from blinders.services.chat.access import authorize
from blinders.services.messages import MessageStore
from blinders.services.rooms import RoomStore

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("/room/{room_id}", response_model=MessagePage)
def room_history(
    room_id: str,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=500),
    user: UserSnapshot = Depends(get_current_user),
    rooms: RoomStore = Depends(get_room_store),
    messages: MessageStore = Depends(get_message_store),
) -> MessagePage:
    """Paginated history of a room the caller may read (oldest first per page)."""
    authorize(user, rooms.find_by_id(room_id)).raise_for_denial()
    return messages.list_for_room(room_id, page=page, limit=limit)
