"""
muc.services.room_state
~~~~~~~~~~~~~~~~~~~~~~~

房间状态：一个房间的花名册与加入/离开状态机。

不变式：
  - 花名册内昵称两两不同；
  - 每个裸身份至多一个 ``Participant``；
  - 同一房间的 join / leave 互斥（每个房间一把锁，房间之间互不阻塞）。

所有操作在锁内完成修改并拍下花名册快照后返回，广播只遍历快照。
"""
from __future__ import annotations

import threading

from slixmpp import JID

from muc.core.logging import get_logger
from muc.schemas.results import JoinResult, LeaveResult, RoomErrorKind, RosterEntry
from muc.services.participant import Participant

logger = get_logger(__name__)


class RoomState:
    """单个房间的花名册。

    Attributes:
        room_jid: 房间裸地址。
    """

    def __init__(self, room_jid: JID) -> None:
        self.room_jid = JID(room_jid.bare)
        # 裸地址 -> Participant，保持加入顺序
        self._participants: dict[str, Participant] = {}
        self._lock = threading.Lock()

    def join(self, session: JID, desired_nickname: str) -> JoinResult:
        """以 ``desired_nickname`` 加入房间。

        同一裸身份已在房间内时，新会话直接并入该参与者并沿用原昵称，
        ``desired_nickname`` 被忽略。否则昵称被他人占用时返回
        ``NICK_ALREADY_IN_USE``，不做任何修改。
        """
        with self._lock:
            participant = self._participants.get(session.bare)
            if participant is not None:
                participant.add(session)
                return JoinResult(nickname=participant.nickname, roster=self._snapshot())

            if self._nickname_in_use(desired_nickname):
                return JoinResult(error=RoomErrorKind.NICK_ALREADY_IN_USE)

            self._participants[session.bare] = Participant(session, desired_nickname)
            logger.debug(
                "新参与者 | room=%s | jid=%s | nick=%s",
                self.room_jid, session.bare, desired_nickname,
            )
            return JoinResult(nickname=desired_nickname, created=True, roster=self._snapshot())

    def leave(self, session: JID, nickname: str) -> LeaveResult:
        """会话 ``session`` 以 ``nickname`` 离开房间。

        昵称与参与者当前昵称不符时视为无效请求，不做修改。
        仅当参与者的最后一个会话离开时 ``removed`` 为真。
        """
        with self._lock:
            participant = self._participants.get(session.bare)
            if participant is None or participant.nickname != nickname:
                return LeaveResult(roster=self._snapshot())
            if not participant.has_session(session):
                return LeaveResult(nickname=participant.nickname, roster=self._snapshot())

            removed = participant.remove(session)
            if removed:
                del self._participants[session.bare]
            return LeaveResult(
                removed=removed,
                left=True,
                nickname=participant.nickname,
                roster=self._snapshot(),
            )

    def resolve_sender(self, session: JID) -> tuple[RosterEntry | None, tuple[RosterEntry, ...]]:
        """查找 ``session`` 所属且已加入的参与者，并一同返回花名册快照。

        ``session`` 的裸身份不在房间内，或该会话本身未加入时，参与者为 None。
        """
        with self._lock:
            participant = self._participants.get(session.bare)
            if participant is None or not participant.has_session(session):
                return None, self._snapshot()
            return participant.snapshot(), self._snapshot()

    def participants(self) -> tuple[RosterEntry, ...]:
        """当前花名册快照。"""
        with self._lock:
            return self._snapshot()

    def _nickname_in_use(self, nickname: str) -> bool:
        return any(p.nickname == nickname for p in self._participants.values())

    def _snapshot(self) -> tuple[RosterEntry, ...]:
        # 调用方必须持有 self._lock
        return tuple(p.snapshot() for p in self._participants.values())

    def __repr__(self) -> str:
        return f"RoomState({self.room_jid.bare!r}, participants={len(self._participants)})"
