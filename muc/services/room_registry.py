"""
muc.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表 —— 进程级单例，管理所有房间的 ``RoomState``。

- ``get_or_create(room_jid)`` → 获取/创建指定房间（原子操作，每个地址只会创建一次）
- ``get(room_jid)``           → 仅查询，不创建
- ``list_rooms()``            → 列出所有房间的摘要

注册表锁只保护字典本身；房间内的加入/离开由各自的房间锁串行化。
房间创建后永不移除（花名册为空时依然保留）。
"""
from __future__ import annotations

import threading

from slixmpp import JID

from muc.core.logging import get_logger
from muc.schemas.rooms import RoomInfoData
from muc.services.room_state import RoomState

logger = get_logger(__name__)


class RoomRegistry:
    """房间地址 → ``RoomState`` 的映射。"""

    def __init__(self) -> None:
        self._rooms: dict[str, RoomState] = {}
        self._lock = threading.Lock()

    def get_or_create(self, room_jid: JID) -> RoomState:
        """获取指定房间，不存在则创建。并发首次加入时也只会创建一个实例。"""
        key = room_jid.bare
        with self._lock:
            room = self._rooms.get(key)
            if room is None:
                room = RoomState(room_jid)
                self._rooms[key] = room
                logger.info("房间已创建 | room=%s | 房间总数=%d", key, len(self._rooms))
            return room

    def get(self, room_jid: JID) -> RoomState | None:
        with self._lock:
            return self._rooms.get(room_jid.bare)

    def list_rooms(self) -> list[RoomInfoData]:
        """列出所有房间的摘要信息（含空房间）。"""
        with self._lock:
            rooms = list(self._rooms.values())
        infos: list[RoomInfoData] = []
        for room in rooms:
            roster = room.participants()
            infos.append(
                RoomInfoData(
                    room_jid=room.room_jid.bare,
                    participant_count=len(roster),
                    session_count=sum(len(entry.sessions) for entry in roster),
                ),
            )
        return infos

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
