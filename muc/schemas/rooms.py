"""
muc.schemas.rooms
~~~~~~~~~~~~~~~~~

房间查询接口的响应数据模型（纯字符串字段，便于 JSON 序列化）。
"""
from __future__ import annotations

from pydantic import BaseModel, Field

from muc.schemas.results import RosterEntry


class RoomInfoData(BaseModel):
    """房间摘要信息。"""

    room_jid: str = Field(..., description="房间裸地址")
    participant_count: int = Field(..., description="当前参与者数")
    session_count: int = Field(..., description="全部参与者的已加入会话总数")


class ParticipantData(BaseModel):
    """单个参与者。"""

    jid: str = Field(..., description="参与者裸地址")
    nickname: str = Field(..., description="房间内昵称")
    sessions: list[str] = Field(..., description="已加入的会话完整地址")

    @classmethod
    def from_entry(cls, entry: RosterEntry) -> ParticipantData:
        return cls(
            jid=entry.jid.bare,
            nickname=entry.nickname,
            sessions=[session.full for session in entry.sessions],
        )


class RosterData(BaseModel):
    """某个房间的花名册。"""

    room_jid: str = Field(..., description="房间裸地址")
    participants: list[ParticipantData] = Field(..., description="参与者列表")
