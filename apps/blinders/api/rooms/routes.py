from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from blinders.api.dependencies import get_current_user
from blinders.core.dependencies import get_chat_controller, get_room_store
from blinders.schemas.rooms import RoomList, RoomOut, RoomRecord
from blinders.schemas.users import UserSnapshot, UserSummary
from blinders.services.chat.access import authorize
from blinders.services.chat.lifecycle import ConnectionLifecycleController
from blinders.services.chat.roles import can_access, room_icon
from blinders.services.rooms import RoomStore

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def _room_out(room: RoomRecord) -> RoomOut:
    return RoomOut(
        id=room.id,
        name=room.name,
        role=room.role,
        description=room.description,
        icon=room_icon(room.role),
        created_at=room.created_at,
        last_activity=room.last_activity,
    )


@router.get("", response_model=RoomList)
def list_rooms(
    user: UserSnapshot = Depends(get_current_user),
    rooms: RoomStore = Depends(get_room_store),
) -> RoomList:
    accessible = [r for r in rooms.list_active() if can_access(user.role, r.role)]
    return RoomList(rooms=[_room_out(r) for r in accessible])


@router.get("/{room_id}", response_model=RoomOut)
def get_room(
    room_id: str,
    user: UserSnapshot = Depends(get_current_user),
    rooms: RoomStore = Depends(get_room_store),
) -> RoomOut:
    room = rooms.find_by_id(room_id)
    authorize(user, room).raise_for_denial()
    return _room_out(room)


@router.get("/{room_id}/online")
async def online_users(
    room_id: str,
    user: UserSnapshot = Depends(get_current_user),
    rooms: RoomStore = Depends(get_room_store),
    controller: ConnectionLifecycleController = Depends(get_chat_controller),
) -> dict[str, object]:
    room = await run_in_threadpool(rooms.find_by_id, room_id)
    authorize(user, room).raise_for_denial()
    users: list[UserSummary] = await controller.online_users(room_id)
    return {"roomId": room_id, "users": [u.model_dump() for u in users]}
