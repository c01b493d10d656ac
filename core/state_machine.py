"""
Match 狀態機：所有狀態變更都經過這裡

UNINITIALIZED --create--> WAITING
WAITING       --join----> IN_PROGRESS
WAITING       --cancel--> CANCELED
IN_PROGRESS   --move----> WON / TIE
IN_PROGRESS   --cancel--> WON（另一位玩家獲勝）

TIE、WON、CANCELED 是終止狀態，之後只能 close。
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from models import Match, MatchStatus, EventLog
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class MatchStateMachine:
    """合法的 Match 狀態轉換"""

    TRANSITIONS = {
        MatchStatus.UNINITIALIZED: {MatchStatus.WAITING},
        MatchStatus.WAITING: {MatchStatus.IN_PROGRESS, MatchStatus.CANCELED},
        MatchStatus.IN_PROGRESS: {MatchStatus.WON, MatchStatus.TIE},
        MatchStatus.TIE: set(),
        MatchStatus.WON: set(),
        MatchStatus.CANCELED: set(),
    }

    @classmethod
    def can_transition(cls, current: MatchStatus, target: MatchStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(
        cls,
        match: Match,
        target: MatchStatus,
        db: Session,
        winner: Optional[str] = None,
    ) -> Match:
        """
        將 match 轉換到 target，並記錄 MATCH_STATE_CHANGED 事件

        參數：
            match: 已鎖定的 Match
            target: 新狀態
            db: SQLAlchemy Session
            winner: target 為 WON 時必填，其他狀態不可提供

        異常：
            InvalidStateTransition: 目前狀態無法轉換到 target
        """
        current = match.status or MatchStatus.UNINITIALIZED
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Match {match.number}: cannot go from {current.value} to {target.value}"
            )
        if (target == MatchStatus.WON) != (winner is not None):
            raise InvalidStateTransition(
                f"Match {match.number}: a winner is required exactly when the match is won"
            )
        if target == MatchStatus.IN_PROGRESS and (match.player_one is None or match.player_two is None):
            raise InvalidStateTransition(
                f"Match {match.number}: both player slots must be set to start"
            )

        match.status = target
        match.winner = winner
        db.add(EventLog(
            match_number=match.number,
            event_type="MATCH_STATE_CHANGED",
            data={"from": current.value, "to": target.value, "winner": winner}
        ))
        logger.info(f"Match {match.number} state: {current.value} -> {target.value}")
        return match
