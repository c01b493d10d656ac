"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

PostgreSQL 上使用 SELECT ... FOR UPDATE 行級鎖。SQLite 忽略 FOR UPDATE，
改由 database.configure_sqlite 讓每個 transaction 以 BEGIN IMMEDIATE
開始，整個資料庫一次只有一個寫入者。
"""
from sqlalchemy.orm import Session, Query

from models import GlobalRegistry, Match, REGISTRY_ID


def with_registry_lock(db: Session) -> Query:
    """
    鎖定 Registry（行級鎖）

    使用場景：
    - 讀取或修改 registry entries、match 計數器、fee pool 之前
    - 所有 ledger 操作都先取這個鎖，因此操作之間有固定順序

    返回：
        Query object（需要呼叫 .first() 來取得結果）
    """
    return db.query(GlobalRegistry).filter(
        GlobalRegistry.id == REGISTRY_ID
    ).with_for_update(nowait=False)


def with_match_lock(match_number: int, db: Session) -> Query:
    """
    鎖定一個 Match（行級鎖）

    範例：
        match = with_match_lock(number, db).first()
        if not match:
            raise MatchNotFound(number)

    參數：
        match_number: Match 編號
        db: SQLAlchemy Session

    注意：
        - 必須在 transaction 內使用（見 database.transactional）
    """
    return db.query(Match).filter(
        Match.number == match_number
    ).with_for_update(nowait=False)
