"""
muc.services.dispatcher
~~~~~~~~~~~~~~~~~~~~~~~

事件分发器 —— 传输层与房间逻辑之间的边界适配器。

接收 Transport 交来的入站 message / presence，驱动
``RoomRegistry`` / ``RoomState`` / ``MessageRouter``，
再把结果翻译为出站节或协议错误，经 Transport 发出。

边界策略:
  - 发往服务本身的 message → ``service-unavailable``（error 类型的直接丢弃，避免错误循环）
  - 发往房间的 groupchat → 转发；房间不存在 ``item-not-found``，非参与者 ``forbidden``
  - 发往服务本身的 presence → 仅记录日志
  - ``unavailable`` presence → 离开（无论有无 MUC 标记）
  - 带 MUC 标记的 available presence → 加入；昵称冲突 ``conflict``，缺昵称 ``jid-malformed``
"""
from __future__ import annotations

from slixmpp import JID

from muc.core.logging import get_logger
from muc.schemas.results import RoomErrorKind
from muc.schemas.stanzas import (
    ErrorCondition,
    InboundMessageEvent,
    InboundPresenceEvent,
    MessageKind,
    PresenceKind,
)
from muc.services.message_router import MessageRouter
from muc.services.presence import join_presences, leave_presences
from muc.services.room_registry import RoomRegistry
from muc.transport.base import Transport

logger = get_logger(__name__)

ROOM_NOT_FOUND_TEXT: str = "group chat does not exist"
NOT_JOINED_TEXT: str = "You are not a participant of this room"


class EventDispatcher:
    """入站事件分发器。两个入口均无返回值，副作用为零或多次 ``transport.deliver``。

    Attributes:
        registry: 房间注册表。
        router: 群聊消息路由器。
        transport: 出站发送通道。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        transport: Transport,
        router: MessageRouter | None = None,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.router = router or MessageRouter(registry)

    # ── message ──────────────────────────────────────────────────────

    def on_message(self, event: InboundMessageEvent) -> None:
        if not event.to_jid.user:
            if event.kind is MessageKind.ERROR:
                logger.debug("丢弃发往服务的错误消息 | from=%s", event.from_jid)
                return
            self._reply_error(event, ErrorCondition.SERVICE_UNAVAILABLE)
            return

        if event.kind is not MessageKind.GROUPCHAT or event.to_jid.resource:
            logger.debug(
                "忽略非群聊消息 | from=%s | to=%s | type=%s",
                event.from_jid, event.to_jid, event.kind.value,
            )
            return

        room_jid = JID(event.to_jid.bare)
        result = self.router.relay(room_jid, event.from_jid, event)
        if result.error is RoomErrorKind.ROOM_NOT_FOUND:
            logger.info("群聊目标房间不存在 | from=%s | room=%s", event.from_jid, room_jid)
            self._reply_error(event, ErrorCondition.ITEM_NOT_FOUND, ROOM_NOT_FOUND_TEXT)
            return
        if result.error is RoomErrorKind.NOT_JOINED:
            logger.info("非参与者发送群聊 | from=%s | room=%s", event.from_jid, room_jid)
            self._reply_error(event, ErrorCondition.FORBIDDEN, NOT_JOINED_TEXT)
            return

        for echo in result.echoes:
            self.transport.deliver(echo)

    # ── presence ─────────────────────────────────────────────────────

    def on_presence(self, event: InboundPresenceEvent) -> None:
        if not event.to_jid.user:
            logger.info("收到发往服务的 presence | from=%s", event.from_jid)
            return

        if event.kind is PresenceKind.UNAVAILABLE:
            self._leave(event)
        elif event.muc_join:
            self._join(event)
        else:
            logger.debug("忽略非加入的 presence | from=%s | to=%s", event.from_jid, event.to_jid)

    def _join(self, event: InboundPresenceEvent) -> None:
        client = event.from_jid
        room_jid = JID(event.to_jid.bare)
        desired_nickname = event.to_jid.resource
        if not desired_nickname:
            logger.info("加入请求缺少昵称 | from=%s | room=%s", client, room_jid)
            self._reply_error(event, ErrorCondition.JID_MALFORMED)
            return

        logger.info("%s 加入房间 %s | 期望昵称=%s", client, room_jid, desired_nickname)
        room = self.registry.get_or_create(room_jid)
        result = room.join(client, desired_nickname)
        if result.error is RoomErrorKind.NICK_ALREADY_IN_USE:
            logger.info("昵称已被占用 | room=%s | nick=%s | from=%s", room_jid, desired_nickname, client)
            self._reply_error(event, ErrorCondition.CONFLICT)
            return

        for presence in join_presences(room.room_jid, client, result):
            self.transport.deliver(presence)

    def _leave(self, event: InboundPresenceEvent) -> None:
        client = event.from_jid
        room_jid = JID(event.to_jid.bare)
        room = self.registry.get(room_jid)
        if room is None:
            logger.debug("离开不存在的房间，忽略 | from=%s | room=%s", client, room_jid)
            return

        logger.info("%s 离开房间 %s", client, room_jid)
        result = room.leave(client, event.to_jid.resource)
        if not result.left:
            logger.debug("离开请求未匹配任何会话 | from=%s | to=%s", client, event.to_jid)
        for presence in leave_presences(room.room_jid, client, result):
            self.transport.deliver(presence)

    def _reply_error(
        self,
        event: InboundMessageEvent | InboundPresenceEvent,
        condition: ErrorCondition,
        text: str | None = None,
    ) -> None:
        self.transport.deliver(self.transport.error_response(event, condition, text))
