"""
Tic-tac-toe escrow ledger 的 ORM models

資料表：
- GlobalRegistry：唯一的 registry row（match 計數器、託管參數、fee pool）
- RegistryEntry：活躍玩家 -> match 編號，每個活躍玩家一筆
- Match：每場比賽一筆，以編號為主鍵
- LedgerAccount：host 端的餘額，押注從這裡扣、獎金發回這裡
- EventLog：只增不改的比賽事件紀錄
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
)

from database import Base
from services.board_service import new_board

REGISTRY_ID = 1


def _utcnow():
    return datetime.now(timezone.utc)


class MatchStatus(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    TIE = "tie"
    WON = "won"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset({MatchStatus.TIE, MatchStatus.WON, MatchStatus.CANCELED})
ACTIVE_STATUSES = frozenset({MatchStatus.WAITING, MatchStatus.IN_PROGRESS})


class GlobalRegistry(Base):
    __tablename__ = "global_registry"

    id = Column(Integer, primary_key=True, default=REGISTRY_ID)
    match_count = Column(Integer, nullable=False, default=1)
    economic_mode = Column(Boolean, nullable=False, default=True)
    fee_percent = Column(Integer, nullable=False, default=0)
    fixed_bet = Column(Integer, nullable=False, default=0)
    owner = Column(String(128), nullable=True)
    charge_fee_on_waiting_cancel = Column(Boolean, nullable=False, default=False)
    fee_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class RegistryEntry(Base):
    __tablename__ = "registry_entries"

    # 以玩家為主鍵：每個身分最多一場活躍比賽
    player = Column(String(128), primary_key=True)
    match_number = Column(Integer, ForeignKey("matches.number"), nullable=False, index=True)
    registered_at = Column(DateTime(timezone=True), default=_utcnow)


class Match(Base):
    __tablename__ = "matches"

    number = Column(Integer, primary_key=True, autoincrement=False)
    player_one = Column(String(128), nullable=True)
    player_two = Column(String(128), nullable=True)
    turn = Column(Integer, nullable=False, default=0)
    board = Column(JSON, nullable=False, default=new_board)
    status = Column(Enum(MatchStatus), nullable=False, default=MatchStatus.UNINITIALIZED)
    winner = Column(String(128), nullable=True)
    pot = Column(Integer, nullable=False, default=0)
    paid = Column(Boolean, nullable=False, default=False)
    closed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def players(self):
        return [self.player_one, self.player_two]

    def is_in_progress(self) -> bool:
        return self.status == MatchStatus.IN_PROGRESS

    def is_waiting(self) -> bool:
        return self.status == MatchStatus.WAITING

    def is_over(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        return {
            "number": self.number,
            "players": self.players,
            "turn": self.turn,
            "board": self.board,
            "status": self.status.value,
            "winner": self.winner,
            "pot": self.pot,
            "paid": self.paid,
            "closed": self.closed,
        }


class LedgerAccount(Base):
    __tablename__ = "ledger_accounts"

    identity = Column(String(128), primary_key=True)
    balance = Column(Integer, nullable=False, default=0)


class EventLog(Base):
    __tablename__ = "event_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_number = Column(Integer, nullable=True, index=True)
    event_type = Column(String(64), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
