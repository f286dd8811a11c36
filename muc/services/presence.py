"""
muc.services.presence
~~~~~~~~~~~~~~~~~~~~~

加入/离开时需要发出的 presence 通知集合。

纯计算逻辑：输入为房间操作结果中的花名册快照，输出为出站 presence 列表，
不涉及状态修改，也不负责发送。
"""
from __future__ import annotations

from slixmpp import JID

from muc.schemas.results import JoinResult, LeaveResult
from muc.schemas.stanzas import (
    STATUS_NICK_ASSIGNED,
    STATUS_SELF_PRESENCE,
    MucItem,
    OutboundPresence,
    PresenceKind,
    Role,
    occupant_jid,
)


def join_presences(room_jid: JID, session: JID, result: JoinResult) -> list[OutboundPresence]:
    """成功加入后的通知，顺序为：

    1. 花名册回放：其他每个参与者一条，发给加入的会话；
    2. 到达广播：其他参与者的每个会话各一条，来自新昵称；
    3. 自我确认：发给加入的会话，带 110 / 210 状态码，总是最后一条。

    加入者在收到完整花名册之后才会看到自我确认。
    """
    if not result.ok or result.nickname is None:
        return []

    joiner = JID(session.bare)
    joiner_occupant = occupant_jid(room_jid, result.nickname)
    others = [entry for entry in result.roster if entry.jid.bare != joiner.bare]

    replay = [
        OutboundPresence(
            from_jid=occupant_jid(room_jid, entry.nickname),
            to_jid=session,
            item=MucItem(jid=entry.jid),
        )
        for entry in others
    ]
    arrivals = [
        OutboundPresence(
            from_jid=joiner_occupant,
            to_jid=other_session,
            item=MucItem(jid=joiner),
        )
        for entry in others
        for other_session in entry.sessions
    ]
    self_presence = OutboundPresence(
        from_jid=joiner_occupant,
        to_jid=session,
        item=MucItem(jid=joiner),
        status_codes=(STATUS_SELF_PRESENCE, STATUS_NICK_ASSIGNED),
    )
    return [*replay, *arrivals, self_presence]


def leave_presences(room_jid: JID, session: JID, result: LeaveResult) -> list[OutboundPresence]:
    """离开后的通知。

    参与者被移除时，向剩余每个参与者的每个会话广播 unavailable；
    只要该会话确实离开（无论同一身份是否还有其他会话），都向它发一条自我确认。
    """
    if not result.left or result.nickname is None:
        return []

    departed = JID(session.bare)
    departed_occupant = occupant_jid(room_jid, result.nickname)
    presences: list[OutboundPresence] = []
    if result.removed:
        presences.extend(
            OutboundPresence(
                from_jid=departed_occupant,
                to_jid=remaining_session,
                kind=PresenceKind.UNAVAILABLE,
                item=MucItem(jid=departed, role=Role.NONE),
            )
            for entry in result.roster
            for remaining_session in entry.sessions
        )
    presences.append(
        OutboundPresence(
            from_jid=departed_occupant,
            to_jid=session,
            kind=PresenceKind.UNAVAILABLE,
            item=MucItem(jid=departed, role=Role.NONE),
            status_codes=(STATUS_SELF_PRESENCE,),
        ),
    )
    return presences
