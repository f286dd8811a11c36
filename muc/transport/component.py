"""
muc.transport.component
~~~~~~~~~~~~~~~~~~~~~~~

基于 slixmpp ``ComponentXMPP`` 的外部组件（XEP-0114）。

职责仅限于 XML 与核心模型之间的相互转换：
  - 入站 ``<message/>`` / ``<presence/>`` → ``Inbound*Event`` → ``EventDispatcher``
  - ``OutboundMessage`` / ``OutboundPresence`` / ``StanzaError`` → XML 节发送

构造时一次性在服务发现（XEP-0030）中公布 ``conference/text`` 身份与 MUC 特性。
"""
from __future__ import annotations

from collections.abc import Callable
from xml.etree import ElementTree as ET

from slixmpp import JID, ComponentXMPP
from slixmpp.stanza import Message, Presence
from slixmpp.xmlstream.handler import Callback
from slixmpp.xmlstream.matcher import StanzaPath

from muc.core.logging import get_logger
from muc.schemas.stanzas import (
    NS_MUC,
    NS_MUC_USER,
    ErrorCondition,
    InboundEvent,
    InboundMessageEvent,
    InboundPresenceEvent,
    MessageKind,
    OutboundMessage,
    OutboundPresence,
    OutboundStanza,
    PresenceKind,
    StanzaError,
    build_error,
)
from muc.services.dispatcher import EventDispatcher

logger = get_logger(__name__)

# 节自身的命名空间，其中的子元素（body / subject / thread / error）不算扩展负载
_STANZA_NAMESPACES: frozenset[str] = frozenset({"jabber:client", "jabber:component:accept"})
_AVAILABLE_TYPES: frozenset[str] = frozenset({"available", "away", "chat", "dnd", "xa"})
_MESSAGE_KINDS: dict[str, MessageKind] = {kind.value: kind for kind in MessageKind}


def _namespace(tag: str) -> str:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def message_event(msg: Message) -> InboundMessageEvent:
    """把 slixmpp Message 转换为入站事件。"""
    extensions = tuple(
        ET.tostring(child, encoding="unicode")
        for child in msg.xml
        if _namespace(child.tag) not in _STANZA_NAMESPACES
    )
    return InboundMessageEvent(
        from_jid=JID(msg["from"]),
        to_jid=JID(msg["to"]),
        kind=_MESSAGE_KINDS.get(msg["type"], MessageKind.NORMAL),
        id=msg["id"] or None,
        body=msg["body"] or None,
        extensions=extensions,
    )


def presence_event(pres: Presence) -> InboundPresenceEvent | None:
    """把 slixmpp Presence 转换为入站事件；订阅、探测、错误等类型返回 None。"""
    ptype = pres["type"]
    if ptype == "unavailable":
        kind = PresenceKind.UNAVAILABLE
    elif ptype in _AVAILABLE_TYPES:
        kind = PresenceKind.AVAILABLE
    else:
        return None
    return InboundPresenceEvent(
        from_jid=JID(pres["from"]),
        to_jid=JID(pres["to"]),
        kind=kind,
        muc_join=pres.xml.find(f"{{{NS_MUC}}}x") is not None,
        id=pres["id"] or None,
    )


def muc_user_payload(presence: OutboundPresence) -> ET.Element:
    """构造 ``{muc#user}x`` 负载：一个 item，以及零或多个 status。"""
    x = ET.Element(f"{{{NS_MUC_USER}}}x")
    ET.SubElement(
        x,
        f"{{{NS_MUC_USER}}}item",
        affiliation=presence.item.affiliation,
        role=presence.item.role.value,
        jid=presence.item.jid.bare,
    )
    for code in presence.status_codes:
        ET.SubElement(x, f"{{{NS_MUC_USER}}}status", code=str(code))
    return x


class MucComponent(ComponentXMPP):
    """多人聊天室外部组件，同时实现核心层的 ``Transport`` 协议。

    需先 ``bind(dispatcher)`` 再连接；连接与重连由 ``ComponentSupervisor`` 负责。
    """

    def __init__(
        self,
        jid: str,
        secret: str,
        host: str,
        port: int,
        service_name: str = "Chatrooms",
    ) -> None:
        super().__init__(jid, secret, host, port)
        self.dispatcher: EventDispatcher | None = None

        # 占用状态只由房间核心维护：关闭 slixmpp 的自动订阅应答与花名册记账
        self.auto_authorize = None
        self.auto_subscribe = False
        for event, handler in self._roster_presence_handlers():
            self.del_event_handler(event, handler)

        self.register_plugin("xep_0030")
        self.plugin["xep_0030"].add_identity(category="conference", itype="text", name=service_name)
        self.plugin["xep_0030"].add_feature(NS_MUC)

        self.register_handler(Callback("MUC Message", StanzaPath("message"), self._on_message))
        self.register_handler(Callback("MUC Presence", StanzaPath("presence"), self._on_presence))

    def bind(self, dispatcher: EventDispatcher) -> None:
        self.dispatcher = dispatcher

    def _roster_presence_handlers(self) -> list[tuple[str, Callable[[Presence], None]]]:
        handlers: list[tuple[str, Callable[[Presence], None]]] = [
            (f"presence_{ptype}", self._handle_available) for ptype in ("available", *Presence.showtypes)
        ]
        handlers += [
            ("presence_unavailable", self._handle_unavailable),
            ("presence_probe", self._handle_probe),
            ("presence_subscribe", self._handle_subscribe),
            ("presence_subscribed", self._handle_subscribed),
            ("presence_unsubscribe", self._handle_unsubscribe),
            ("presence_unsubscribed", self._handle_unsubscribed),
            ("roster_subscription_request", self._handle_new_subscription),
        ]
        return handlers

    # ── 入站 ─────────────────────────────────────────────────────────

    def _on_message(self, msg: Message) -> None:
        if self.dispatcher is None:
            logger.warning("分发器未绑定，丢弃 message | from=%s", msg["from"])
            return
        try:
            self.dispatcher.on_message(message_event(msg))
        except Exception as e:
            logger.error("处理 message 失败: %s", e, exc_info=True)

    def _on_presence(self, pres: Presence) -> None:
        if self.dispatcher is None:
            logger.warning("分发器未绑定，丢弃 presence | from=%s", pres["from"])
            return
        event = presence_event(pres)
        if event is None:
            logger.debug("忽略 presence | type=%s | from=%s", pres["type"], pres["from"])
            return
        try:
            self.dispatcher.on_presence(event)
        except Exception as e:
            logger.error("处理 presence 失败: %s", e, exc_info=True)

    # ── Transport 协议 ───────────────────────────────────────────────

    def error_response(
        self,
        original: InboundEvent,
        condition: ErrorCondition,
        text: str | None = None,
    ) -> StanzaError:
        return build_error(original, condition, text)

    def deliver(self, stanza: OutboundStanza) -> None:
        if isinstance(stanza, OutboundMessage):
            self._render_message(stanza).send()
        elif isinstance(stanza, OutboundPresence):
            self._render_presence(stanza).send()
        else:
            self._render_error(stanza).send()

    def _render_message(self, message: OutboundMessage) -> Message:
        msg = self.make_message(
            mto=message.to_jid,
            mbody=message.body,
            mtype=message.kind.value,
            mfrom=message.from_jid,
        )
        if message.id:
            msg["id"] = message.id
        for extension in message.extensions:
            msg.xml.append(ET.fromstring(extension))
        return msg

    def _render_presence(self, presence: OutboundPresence) -> Presence:
        pres = self.make_presence(
            pto=presence.to_jid,
            pfrom=presence.from_jid,
            ptype="unavailable" if presence.kind is PresenceKind.UNAVAILABLE else None,
        )
        pres.xml.append(muc_user_payload(presence))
        return pres

    def _render_error(self, error: StanzaError) -> Message | Presence:
        if error.stanza == "message":
            stanza = self.make_message(mto=error.to_jid, mfrom=error.from_jid, mtype="error")
        else:
            stanza = self.make_presence(pto=error.to_jid, pfrom=error.from_jid, ptype="error")
        if error.id:
            stanza["id"] = error.id
        stanza["error"]["type"] = error.error_type
        stanza["error"]["condition"] = error.condition.value
        if error.text:
            stanza["error"]["text"] = error.text
        return stanza
