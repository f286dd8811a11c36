"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures，用记录发送内容的假 Transport 代替真实 XMPP 连接，
使单元测试可在无服务器环境下快速运行。
"""
from __future__ import annotations

import os

import pytest
from slixmpp import JID

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("COMPONENT_SECRET", "test-fake-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("XMPP_AUTOCONNECT", "false")

from muc.schemas.stanzas import (  # noqa: E402
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
from muc.services.dispatcher import EventDispatcher  # noqa: E402
from muc.services.room_registry import RoomRegistry  # noqa: E402

SERVICE: str = "muc.example.org"
LOBBY: str = f"lobby@{SERVICE}"


class FakeTransport:
    """记录所有 ``deliver`` 调用的 Transport。"""

    def __init__(self) -> None:
        self.sent: list[OutboundStanza] = []

    def deliver(self, stanza: OutboundStanza) -> None:
        self.sent.append(stanza)

    def error_response(
        self,
        original: InboundEvent,
        condition: ErrorCondition,
        text: str | None = None,
    ) -> StanzaError:
        return build_error(original, condition, text)

    # ── 断言辅助 ──

    def presences(self) -> list[OutboundPresence]:
        return [s for s in self.sent if isinstance(s, OutboundPresence)]

    def messages(self) -> list[OutboundMessage]:
        return [s for s in self.sent if isinstance(s, OutboundMessage)]

    def errors(self) -> list[StanzaError]:
        return [s for s in self.sent if isinstance(s, StanzaError)]

    def to(self, full_jid: str) -> list[OutboundStanza]:
        return [s for s in self.sent if s.to_jid.full == full_jid]

    def clear(self) -> None:
        self.sent.clear()


def join_event(client: str, occupant: str) -> InboundPresenceEvent:
    """``client`` 向 ``room/nick`` 发送带 MUC 标记的 available presence。"""
    return InboundPresenceEvent(
        from_jid=JID(client), to_jid=JID(occupant), muc_join=True, id="join-1",
    )


def leave_event(client: str, occupant: str) -> InboundPresenceEvent:
    return InboundPresenceEvent(
        from_jid=JID(client), to_jid=JID(occupant), kind=PresenceKind.UNAVAILABLE,
    )


def groupchat_event(client: str, room: str, body: str, msg_id: str = "m1") -> InboundMessageEvent:
    return InboundMessageEvent(
        from_jid=JID(client),
        to_jid=JID(room),
        kind=MessageKind.GROUPCHAT,
        id=msg_id,
        body=body,
    )


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def dispatcher(registry: RoomRegistry, transport: FakeTransport) -> EventDispatcher:
    return EventDispatcher(registry, transport)
