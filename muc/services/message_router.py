"""
muc.services.message_router
~~~~~~~~~~~~~~~~~~~~~~~~~~~

群聊消息转发，校验发送者身份，并为房间内每个已加入会话生成一份回显。
"""
from __future__ import annotations

from slixmpp import JID

from muc.core.logging import get_logger
from muc.schemas.results import RelayResult, RoomErrorKind
from muc.schemas.stanzas import InboundMessageEvent, MessageKind, OutboundMessage, occupant_jid
from muc.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class MessageRouter:
    """群聊消息路由器。

    回显的发送方改写为 ``room/昵称``，id、正文与扩展负载原样保留；
    发送者自己的所有会话（包括发出消息的那个）也会收到回显。
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry

    def relay(self, room_jid: JID, sender: JID, message: InboundMessageEvent) -> RelayResult:
        room = self.registry.get(room_jid)
        if room is None:
            return RelayResult(error=RoomErrorKind.ROOM_NOT_FOUND)

        author, roster = room.resolve_sender(sender)
        if author is None:
            return RelayResult(error=RoomErrorKind.NOT_JOINED)

        echo_from = occupant_jid(room.room_jid, author.nickname)
        echoes = tuple(
            OutboundMessage(
                from_jid=echo_from,
                to_jid=session,
                kind=MessageKind.GROUPCHAT,
                id=message.id,
                body=message.body,
                extensions=message.extensions,
            )
            for entry in roster
            for session in entry.sessions
        )
        logger.debug(
            "群聊消息 | room=%s | from=%s | 副本数=%d",
            room.room_jid, echo_from, len(echoes),
        )
        return RelayResult(echoes=echoes)
