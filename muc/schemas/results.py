"""
muc.schemas.results
~~~~~~~~~~~~~~~~~~~

房间操作的结果模型。

join / leave / relay 的失败以 ``RoomErrorKind`` 标记在结果中返回，
由 ``EventDispatcher`` 统一翻译为协议错误，核心层不抛异常、不发送。
"""
from __future__ import annotations

from enum import Enum

from slixmpp import JID

from muc.schemas.stanzas import OutboundMessage, StanzaModel


class RoomErrorKind(str, Enum):
    NICK_ALREADY_IN_USE = "nick_already_in_use"
    ROOM_NOT_FOUND = "room_not_found"
    NOT_JOINED = "not_joined"


class RosterEntry(StanzaModel):
    """某一时刻参与者的不可变快照。

    Attributes:
        jid: 参与者的裸地址。
        nickname: 房间内昵称。
        sessions: 已加入的全部会话地址，按完整地址排序。
    """

    jid: JID
    nickname: str
    sessions: tuple[JID, ...]


class JoinResult(StanzaModel):
    """``RoomState.join`` 的结果。

    Attributes:
        nickname: 成功时实际生效的昵称（同一身份的第二个会话沿用原昵称）。
        created: 是否新建了参与者。
        roster: 加入后（仍持锁时）拍下的花名册快照。
    """

    nickname: str | None = None
    error: RoomErrorKind | None = None
    created: bool = False
    roster: tuple[RosterEntry, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None


class LeaveResult(StanzaModel):
    """``RoomState.leave`` 的结果。

    Attributes:
        removed: 参与者的最后一个会话离开，参与者已从花名册移除。
        left: 该会话确实从某个参与者上摘除（昵称匹配且会话在列）。
        nickname: 离开者的昵称（``left`` 为假时可能为 None）。
        roster: 离开后剩余的花名册快照。
    """

    removed: bool = False
    left: bool = False
    nickname: str | None = None
    roster: tuple[RosterEntry, ...] = ()


class RelayResult(StanzaModel):
    """``MessageRouter.relay`` 的结果：错误，或待发送的回显副本。"""

    error: RoomErrorKind | None = None
    echoes: tuple[OutboundMessage, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None
