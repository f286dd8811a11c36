"""
muc.schemas.stanzas
~~~~~~~~~~~~~~~~~~~

核心层与传输层之间交换的节（stanza）模型。

入站事件由 Transport 从 XML 节转换而来；出站模型由核心层构造，
再交给 Transport 渲染为 XML 发送。核心层从不直接接触 XML。
"""
from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from slixmpp import JID

NS_MUC: str = "http://jabber.org/protocol/muc"
NS_MUC_USER: str = NS_MUC + "#user"

# MUC 状态码（XEP-0045 §15.6）
STATUS_SELF_PRESENCE: int = 110
STATUS_NICK_ASSIGNED: int = 210


class MessageKind(str, Enum):
    NORMAL = "normal"
    CHAT = "chat"
    GROUPCHAT = "groupchat"
    HEADLINE = "headline"
    ERROR = "error"


class PresenceKind(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Role(str, Enum):
    NONE = "none"
    PARTICIPANT = "participant"


class ErrorCondition(str, Enum):
    """协议层错误条件，值即 XML 中的元素名。"""

    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    ITEM_NOT_FOUND = "item-not-found"
    JID_MALFORMED = "jid-malformed"
    SERVICE_UNAVAILABLE = "service-unavailable"


# 每种错误条件对应的 error type（XMPP Core §8.3.2）
ERROR_TYPES: dict[ErrorCondition, str] = {
    ErrorCondition.CONFLICT: "cancel",
    ErrorCondition.FORBIDDEN: "auth",
    ErrorCondition.ITEM_NOT_FOUND: "cancel",
    ErrorCondition.JID_MALFORMED: "modify",
    ErrorCondition.SERVICE_UNAVAILABLE: "cancel",
}


class StanzaModel(BaseModel):
    """所有节模型的基类：不可变，允许 ``JID`` 字段。"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def occupant_jid(room_jid: JID, nickname: str) -> JID:
    """返回房间内某个昵称对应的地址 ``room@service/nickname``。"""
    return JID(f"{room_jid.bare}/{nickname}")


# ── 入站 ──────────────────────────────────────────────────────────────

class InboundMessageEvent(StanzaModel):
    """Transport 收到的一条 message。

    Attributes:
        extensions: 除正文外的扩展负载（序列化后的 XML），原样转发。
    """

    from_jid: JID
    to_jid: JID
    kind: MessageKind = MessageKind.NORMAL
    id: str | None = None
    body: str | None = None
    extensions: tuple[str, ...] = ()


class InboundPresenceEvent(StanzaModel):
    """Transport 收到的一条 presence。

    Attributes:
        muc_join: 是否携带 ``{http://jabber.org/protocol/muc}x`` 加入标记。
    """

    from_jid: JID
    to_jid: JID
    kind: PresenceKind = PresenceKind.AVAILABLE
    muc_join: bool = False
    id: str | None = None


InboundEvent = Union[InboundMessageEvent, InboundPresenceEvent]


# ── 出站 ──────────────────────────────────────────────────────────────

class MucItem(StanzaModel):
    """``muc#user`` 负载中的 item 元素。"""

    jid: JID
    role: Role = Role.PARTICIPANT
    affiliation: Literal["none"] = "none"


class OutboundPresence(StanzaModel):
    from_jid: JID
    to_jid: JID
    kind: PresenceKind = PresenceKind.AVAILABLE
    item: MucItem
    status_codes: tuple[int, ...] = ()


class OutboundMessage(StanzaModel):
    from_jid: JID
    to_jid: JID
    kind: MessageKind = MessageKind.GROUPCHAT
    id: str | None = None
    body: str | None = None
    extensions: tuple[str, ...] = ()


class StanzaError(StanzaModel):
    """协议错误应答：发回原始发送方，来自原始接收方，保留关联 id。"""

    stanza: Literal["message", "presence"]
    from_jid: JID
    to_jid: JID
    id: str | None = None
    condition: ErrorCondition
    error_type: str = Field(..., description="cancel / auth / modify / wait")
    text: str | None = None


OutboundStanza = Union[OutboundMessage, OutboundPresence, StanzaError]


def build_error(
    original: InboundEvent,
    condition: ErrorCondition,
    text: str | None = None,
) -> StanzaError:
    """为入站事件构造错误应答（收发地址互换，保留 id）。"""
    stanza = "message" if isinstance(original, InboundMessageEvent) else "presence"
    return StanzaError(
        stanza=stanza,
        from_jid=original.to_jid,
        to_jid=original.from_jid,
        id=original.id,
        condition=condition,
        error_type=ERROR_TYPES[condition],
        text=text,
    )
