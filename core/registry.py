"""
Registry：記錄每個活躍玩家屬於哪一場比賽

Registry row 本身（match 計數器、託管參數、fee pool）是一筆需要明確
初始化的紀錄。玩家 -> match 的對應存在 registry_entries，以玩家為主鍵，
所以同一個玩家不可能出現兩次。

Match 不持有 registry 的參照；需要 registry 的操作都拿 session 並透過
這裡的函式存取。
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from models import GlobalRegistry, RegistryEntry, EventLog, REGISTRY_ID
from core.locks import with_registry_lock
from core.exceptions import (
    GameAlreadyInProgress,
    RegistryAlreadyInitialized,
    RegistryInconsistency,
    RegistryNotInitialized,
)
from database import transactional, get_settings

logger = logging.getLogger(__name__)


@transactional
def initialize_registry(
    db: Session,
    fee_percent: Optional[int] = None,
    fixed_bet: Optional[int] = None,
    owner: Optional[str] = None,
    economic_mode: Optional[bool] = None,
    charge_fee_on_waiting_cancel: Optional[bool] = None,
) -> GlobalRegistry:
    """
    建立 Registry row，計數器從 1 開始

    參數：
        db: SQLAlchemy Session
        其餘參數為 None 時使用 settings 的值；寫入後所有比賽都以
        registry 上的值結算，之後修改環境變數不影響既有的 registry

    返回：
        新建立的 GlobalRegistry

    異常：
        RegistryAlreadyInitialized: registry 已經存在
    """
    if db.get(GlobalRegistry, REGISTRY_ID) is not None:
        raise RegistryAlreadyInitialized()

    settings = get_settings()
    registry = GlobalRegistry(
        id=REGISTRY_ID,
        match_count=1,
        economic_mode=settings.economic_mode if economic_mode is None else economic_mode,
        fee_percent=settings.fee_percent if fee_percent is None else fee_percent,
        fixed_bet=settings.fixed_bet if fixed_bet is None else fixed_bet,
        owner=settings.owner if owner is None else owner,
        charge_fee_on_waiting_cancel=(
            settings.charge_fee_on_waiting_cancel
            if charge_fee_on_waiting_cancel is None
            else charge_fee_on_waiting_cancel
        ),
        fee_balance=0,
    )
    if not 0 <= registry.fee_percent <= 100:
        raise ValueError(f"fee_percent must be within 0..100, got {registry.fee_percent}")
    db.add(registry)
    db.add(EventLog(
        event_type="REGISTRY_INITIALIZED",
        data={
            "fee_percent": registry.fee_percent,
            "fixed_bet": registry.fixed_bet,
            "owner": registry.owner,
            "economic_mode": registry.economic_mode,
            "charge_fee_on_waiting_cancel": registry.charge_fee_on_waiting_cancel,
        }
    ))

    logger.info(
        f"Registry initialized: fee={registry.fee_percent}% bet={registry.fixed_bet} "
        f"owner={registry.owner} economic={registry.economic_mode}"
    )
    return registry


def get_registry(db: Session, lock: bool = False) -> GlobalRegistry:
    """
    取得 Registry row

    異常：
        RegistryNotInitialized: 尚未執行 initialize_registry
    """
    if lock:
        registry = with_registry_lock(db).first()
    else:
        registry = db.get(GlobalRegistry, REGISTRY_ID)
    if registry is None:
        raise RegistryNotInitialized()
    return registry


def register(db: Session, player: str, match_number: int) -> RegistryEntry:
    """
    將玩家登記為 match_number 的活躍玩家

    異常：
        GameAlreadyInProgress: 玩家已經有 entry
    """
    existing = db.get(RegistryEntry, player)
    if existing is not None:
        raise GameAlreadyInProgress(
            f"Player {player} is already active in match {existing.match_number}"
        )
    entry = RegistryEntry(player=player, match_number=match_number)
    db.add(entry)
    db.flush()
    logger.info(f"Registered player {player} in match {match_number}")
    return entry


def lookup(db: Session, player: str) -> Optional[int]:
    entry = db.get(RegistryEntry, player)
    return entry.match_number if entry else None


def unregister_all(db: Session, match_number: int) -> List[str]:
    """
    移除所有指向 match_number 的 entry

    返回：
        被移除的玩家列表

    異常：
        RegistryInconsistency: 沒有任何 entry 指向這場比賽
    """
    entries = db.query(RegistryEntry).filter(
        RegistryEntry.match_number == match_number
    ).all()
    if not entries:
        raise RegistryInconsistency(match_number)

    removed = []
    for entry in entries:
        removed.append(entry.player)
        db.delete(entry)
        logger.info(f"Removed player {entry.player} from match {match_number}")
    db.flush()
    return removed


def active_players(db: Session) -> List[Tuple[str, int]]:
    """依登記順序的 (player, match_number)"""
    entries = db.query(RegistryEntry).order_by(
        RegistryEntry.registered_at, RegistryEntry.player
    ).all()
    return [(e.player, e.match_number) for e in entries]
