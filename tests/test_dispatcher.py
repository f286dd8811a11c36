"""
tests.test_dispatcher
~~~~~~~~~~~~~~~~~~~~~

EventDispatcher 边界策略测试：入站事件 → 出站节 / 协议错误。
"""
from __future__ import annotations

from slixmpp import JID

from conftest import LOBBY, SERVICE, FakeTransport, groupchat_event, join_event, leave_event
from muc.schemas.stanzas import (
    STATUS_NICK_ASSIGNED,
    STATUS_SELF_PRESENCE,
    ErrorCondition,
    InboundMessageEvent,
    InboundPresenceEvent,
    MessageKind,
    PresenceKind,
)
from muc.services.dispatcher import EventDispatcher
from muc.services.room_registry import RoomRegistry


# ── message ──────────────────────────────────────────────────────────

class TestOnMessage:
    """测试 message 分发。"""

    def test_message_to_service_is_rejected(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        """发往服务本身的消息返回 service-unavailable，收发地址互换并保留 id。"""
        event = InboundMessageEvent(
            from_jid=JID("alice@example.org/s1"), to_jid=JID(SERVICE), id="q1", body="hello?",
        )

        dispatcher.on_message(event)

        assert len(transport.sent) == 1
        error = transport.errors()[0]
        assert error.stanza == "message"
        assert error.condition is ErrorCondition.SERVICE_UNAVAILABLE
        assert error.error_type == "cancel"
        assert error.to_jid.full == "alice@example.org/s1"
        assert error.from_jid.full == SERVICE
        assert error.id == "q1"

    def test_error_message_to_service_is_dropped(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        """error 类型的消息直接丢弃，避免错误循环。"""
        event = InboundMessageEvent(
            from_jid=JID("alice@example.org/s1"), to_jid=JID(SERVICE), kind=MessageKind.ERROR,
        )

        dispatcher.on_message(event)

        assert transport.sent == []

    def test_groupchat_service_address_does_not_fall_through(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        """发往服务的 groupchat 只回一条 service-unavailable。"""
        dispatcher.on_message(groupchat_event("alice@example.org/s1", SERVICE, "hi"))

        assert [e.condition for e in transport.errors()] == [ErrorCondition.SERVICE_UNAVAILABLE]
        assert len(transport.sent) == 1

    def test_groupchat_to_unknown_room(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        dispatcher.on_message(groupchat_event("alice@example.org/s1", f"ghost@{SERVICE}", "hi"))

        error = transport.errors()[0]
        assert error.condition is ErrorCondition.ITEM_NOT_FOUND
        assert error.error_type == "cancel"
        assert error.text
        assert registry.get(JID(f"ghost@{SERVICE}")) is None

    def test_groupchat_from_non_participant(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        transport.clear()

        dispatcher.on_message(groupchat_event("mallory@example.org/x", LOBBY, "hi"))

        assert len(transport.sent) == 1
        error = transport.errors()[0]
        assert error.condition is ErrorCondition.FORBIDDEN
        assert error.error_type == "auth"

    def test_non_groupchat_to_room_is_ignored(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        """发往房间的普通消息与私聊消息被忽略。"""
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        transport.clear()

        dispatcher.on_message(
            InboundMessageEvent(from_jid=JID("alice@example.org/s1"), to_jid=JID(LOBBY), body="x"),
        )
        dispatcher.on_message(groupchat_event("alice@example.org/s1", f"{LOBBY}/bob", "psst"))

        assert transport.sent == []


# ── presence ─────────────────────────────────────────────────────────

class TestOnPresence:
    """测试 presence 分发。"""

    def test_presence_to_service_is_ignored(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        dispatcher.on_presence(join_event("alice@example.org/s1", SERVICE))

        assert transport.sent == []
        assert len(registry) == 0

    def test_presence_without_muc_marker_is_ignored(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        event = InboundPresenceEvent(
            from_jid=JID("alice@example.org/s1"), to_jid=JID(f"{LOBBY}/alice"),
        )

        dispatcher.on_presence(event)

        assert transport.sent == []
        assert len(registry) == 0

    def test_join_without_nickname(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        """缺少昵称的加入返回 jid-malformed，且不创建房间。"""
        dispatcher.on_presence(join_event("alice@example.org/s1", LOBBY))

        error = transport.errors()[0]
        assert error.stanza == "presence"
        assert error.condition is ErrorCondition.JID_MALFORMED
        assert error.error_type == "modify"
        assert len(registry) == 0

    def test_nickname_conflict(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        """昵称冲突只向请求者回一条 conflict，其他人不受影响。"""
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        transport.clear()

        dispatcher.on_presence(join_event("bob@example.org/s1", f"{LOBBY}/alice"))

        assert len(transport.sent) == 1
        error = transport.errors()[0]
        assert error.condition is ErrorCondition.CONFLICT
        assert error.stanza == "presence"
        assert error.to_jid.full == "bob@example.org/s1"
        assert error.from_jid.full == f"{LOBBY}/alice"
        assert error.id == "join-1"

    def test_unavailable_without_marker_leaves(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        """unavailable 无论有无 MUC 标记都视为离开。"""
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        dispatcher.on_presence(join_event("bob@example.org/s1", f"{LOBBY}/bob"))
        transport.clear()

        dispatcher.on_presence(leave_event("bob@example.org/s1", f"{LOBBY}/bob"))

        to_alice = transport.to("alice@example.org/s1")
        assert len(to_alice) == 1
        assert to_alice[0].kind is PresenceKind.UNAVAILABLE
        assert to_alice[0].from_jid.full == f"{LOBBY}/bob"
        to_bob = transport.to("bob@example.org/s1")
        assert len(to_bob) == 1
        assert to_bob[0].status_codes == (STATUS_SELF_PRESENCE,)
        room = registry.get(JID(LOBBY))
        assert [e.nickname for e in room.participants()] == ["alice"]

    def test_leave_unknown_room_does_not_create_it(
        self, dispatcher: EventDispatcher, transport: FakeTransport, registry: RoomRegistry,
    ) -> None:
        dispatcher.on_presence(leave_event("alice@example.org/s1", f"ghost@{SERVICE}/alice"))

        assert transport.sent == []
        assert len(registry) == 0

    def test_leave_with_stale_nickname_is_ignored(
        self, dispatcher: EventDispatcher, transport: FakeTransport,
    ) -> None:
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        transport.clear()

        dispatcher.on_presence(leave_event("alice@example.org/s1", f"{LOBBY}/someone"))

        assert transport.sent == []


# ── 端到端场景 ───────────────────────────────────────────────────────

class TestLobbyScenario:
    """空房间 lobby：alice 双会话、bob 抢昵称失败、群聊回显到双会话。"""

    def test_scenario(self, dispatcher: EventDispatcher, transport: FakeTransport) -> None:
        # alice@s1 加入：只有一条自我确认
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        assert len(transport.sent) == 1
        self_presence = transport.presences()[0]
        assert self_presence.to_jid.full == "alice@example.org/s1"
        assert self_presence.from_jid.full == f"{LOBBY}/alice"
        assert self_presence.status_codes == (STATUS_SELF_PRESENCE, STATUS_NICK_ASSIGNED)
        transport.clear()

        # bob 抢 alice 昵称失败，alice 不受影响
        dispatcher.on_presence(join_event("bob@example.org/s1", f"{LOBBY}/alice"))
        assert [e.condition for e in transport.errors()] == [ErrorCondition.CONFLICT]
        assert transport.to("alice@example.org/s1") == []
        transport.clear()

        # alice@s2 期望 carol，实际沿用 alice
        dispatcher.on_presence(join_event("alice@example.org/s2", f"{LOBBY}/carol"))
        assert len(transport.sent) == 1
        assert transport.sent[0].to_jid.full == "alice@example.org/s2"
        assert transport.sent[0].from_jid.full == f"{LOBBY}/alice"
        transport.clear()

        # alice@s1 发 hi：两个会话都收到来自 lobby/alice 的回显
        dispatcher.on_message(groupchat_event("alice@example.org/s1", LOBBY, "hi"))
        echoes = transport.messages()
        assert sorted(m.to_jid.full for m in echoes) == [
            "alice@example.org/s1",
            "alice@example.org/s2",
        ]
        assert all(m.from_jid.full == f"{LOBBY}/alice" and m.body == "hi" for m in echoes)

    def test_leave_completeness(self, dispatcher: EventDispatcher, transport: FakeTransport) -> None:
        """最后一个会话离开后，旧会话发言被拒绝。"""
        dispatcher.on_presence(join_event("alice@example.org/s1", f"{LOBBY}/alice"))
        dispatcher.on_presence(join_event("alice@example.org/s2", f"{LOBBY}/alice"))
        dispatcher.on_presence(leave_event("alice@example.org/s1", f"{LOBBY}/alice"))
        dispatcher.on_presence(leave_event("alice@example.org/s2", f"{LOBBY}/alice"))
        transport.clear()

        dispatcher.on_message(groupchat_event("alice@example.org/s1", LOBBY, "anyone?"))

        assert [e.condition for e in transport.errors()] == [ErrorCondition.FORBIDDEN]
