"""
muc.transport.base
~~~~~~~~~~~~~~~~~~

核心层对传输层的全部依赖。

任何实现了 ``deliver`` / ``error_response`` 的对象都可以作为 Transport，
生产环境为 ``MucComponent``，测试中为记录发送内容的假对象。
"""
from __future__ import annotations

from typing import Protocol

from muc.schemas.stanzas import ErrorCondition, InboundEvent, OutboundStanza, StanzaError


class Transport(Protocol):

    def deliver(self, stanza: OutboundStanza) -> None:
        """即发即弃地投递到一个完整地址。"""
        ...

    def error_response(
        self,
        original: InboundEvent,
        condition: ErrorCondition,
        text: str | None = None,
    ) -> StanzaError:
        """为入站事件构造协议错误应答（保留关联 id）。"""
        ...
