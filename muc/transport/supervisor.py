"""
muc.transport.supervisor
~~~~~~~~~~~~~~~~~~~~~~~~

组件连接守护：连接 → 等待断开 → 固定间隔后重连，直到任务被取消。
"""
from __future__ import annotations

import asyncio
from typing import Any

from muc.core.logging import get_logger

logger = get_logger(__name__)


class ComponentSupervisor:
    """保持组件在线。

    Attributes:
        component: slixmpp 组件（需提供 ``connect`` / ``disconnect`` / ``cancel_connection_attempt`` / ``add_event_handler``）。
        reconnect_delay: 断开或连接失败后，重连前等待的秒数。
    """

    def __init__(self, component: Any, reconnect_delay: float) -> None:
        self.component = component
        self.reconnect_delay = reconnect_delay
        self.connect_attempts: int = 0
        self._disconnected = asyncio.Event()

        component.add_event_handler("session_start", self._on_session_start)
        component.add_event_handler("disconnected", self._on_disconnected)
        component.add_event_handler("connection_failed", self._on_connection_failed)

    async def run(self) -> None:
        """在后台任务中运行；取消任务时断开连接。"""
        try:
            while True:
                self._disconnected.clear()
                self.connect_attempts += 1
                logger.info("正在连接 XMPP 服务器 | 第 %d 次", self.connect_attempts)
                self.component.connect()
                await self._disconnected.wait()
                logger.warning("组件连接已断开，%.1f 秒后重连", self.reconnect_delay)
                await asyncio.sleep(self.reconnect_delay)
        finally:
            self.component.disconnect()
            logger.info("组件守护已停止")

    def _on_session_start(self, _event: Any) -> None:
        logger.info("组件已上线 | jid=%s", self.component.boundjid)

    def _on_disconnected(self, reason: Any) -> None:
        logger.debug("disconnected 事件 | reason=%s", reason)
        self._disconnected.set()

    def _on_connection_failed(self, error: Any) -> None:
        logger.error("连接 XMPP 服务器失败: %s", error)
        # 重连节奏只由守护控制，slixmpp 自带的退避重试必须取消
        self.component.cancel_connection_attempt()
        self._disconnected.set()
