"""
muc.api.room
~~~~~~~~~~~~

房间查询接口，只读，供运维查看当前占用情况。

端点:
  - ``GET /rooms``                          → 所有房间摘要（含空房间）
  - ``GET /rooms/{room_jid}/participants``  → 指定房间的花名册
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from slixmpp import JID
from slixmpp.jid import InvalidJID

from muc.api.deps import get_registry
from muc.schemas.api_response import ApiResponse
from muc.schemas.rooms import ParticipantData, RoomInfoData, RosterData
from muc.services.room_registry import RoomRegistry

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取房间列表")
async def list_rooms(
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[list[RoomInfoData]]:
    return ApiResponse.ok(data=registry.list_rooms())


@router.get(
    "/rooms/{room_jid}/participants",
    summary="获取房间花名册",
    response_model=ApiResponse[RosterData],
)
async def room_participants(
    room_jid: str,
    registry: RoomRegistry = Depends(get_registry),
):
    """返回指定房间的参与者及其已加入会话。

    房间不存在（或地址不合法）时返回 404，且不会创建房间。

    Args:
        room_jid: 房间裸地址，如 ``lobby@muc.localhost``。
    """
    try:
        room = registry.get(JID(room_jid))
    except InvalidJID:
        room = None
    if room is None:
        response = ApiResponse.fail(msg=f"Room {room_jid} not found", code=404)
        return JSONResponse(status_code=404, content=response.model_dump())

    return ApiResponse.ok(
        data=RosterData(
            room_jid=room.room_jid.bare,
            participants=[ParticipantData.from_entry(entry) for entry in room.participants()],
        ),
    )
