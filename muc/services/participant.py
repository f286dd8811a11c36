"""
muc.services.participant
~~~~~~~~~~~~~~~~~~~~~~~~

参与者领域模型 —— 一个裸身份在某个房间内的化身。

同一裸身份的多个客户端（会话）共用一个 ``Participant`` 和同一个昵称。
``Participant`` 只由 ``RoomState`` 在持有房间锁时修改。
"""
from __future__ import annotations

from slixmpp import JID

from muc.schemas.results import RosterEntry


class Participant:
    """房间内的一个参与者。

    Attributes:
        jid: 参与者的裸地址。
        nickname: 房间内昵称，加入后不可更改。
        sessions: 当前以该昵称加入的会话完整地址集合，参与者存在期间非空。
    """

    def __init__(self, session: JID, nickname: str) -> None:
        self.jid = JID(session.bare)
        self.nickname = nickname
        self.sessions: set[JID] = {JID(session)}

    def add(self, session: JID) -> None:
        self.sessions.add(JID(session))

    def remove(self, session: JID) -> bool:
        """移除一个会话，返回移除后是否已无会话。"""
        self.sessions.discard(session)
        return not self.sessions

    def has_session(self, session: JID) -> bool:
        return session in self.sessions

    def owns(self, session: JID) -> bool:
        """``session`` 是否属于本参与者的裸身份。"""
        return session.bare == self.jid.bare

    def snapshot(self) -> RosterEntry:
        return RosterEntry(
            jid=self.jid,
            nickname=self.nickname,
            sessions=tuple(sorted(self.sessions, key=lambda s: s.full)),
        )

    def __repr__(self) -> str:
        return f"Participant({self.jid.bare!r}, nickname={self.nickname!r}, sessions={len(self.sessions)})"
