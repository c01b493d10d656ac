from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

from core.exceptions import TicTacToeLedgerException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./tictactoe_ledger.db"

    # Registry 初始化時複製進 GlobalRegistry 的託管參數
    economic_mode: bool = True
    fee_percent: int = 5
    fixed_bet: int = 100_000_000
    owner: str = "ledger-owner"
    charge_fee_on_waiting_cancel: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LEDGER_")


@lru_cache()
def get_settings():
    return Settings()


def configure_sqlite(target: Engine) -> Engine:
    """
    讓 SQLite 的 transaction 從第一個讀取就開始

    pysqlite 預設只在第一個寫入前才送出 BEGIN，之前的 SELECT 都在
    transaction 之外執行，而 SQLite 又忽略 FOR UPDATE。結果是兩個請求
    可以讀到同一個 WAITING match，然後各自 commit（lost update）。

    做法（SQLAlchemy 文件中的 pysqlite 範例）：
    1. connect 時關閉 driver 自己的 BEGIN（isolation_level = None）
    2. 每個 transaction 開始時送出 BEGIN IMMEDIATE，直接取得寫入鎖

    之後所有 transaction 依序執行，等同於 PostgreSQL 上的行級鎖。

    參數：
        target: SQLite Engine

    返回：
        同一個 Engine
    """
    @event.listens_for(target, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return target


settings = get_settings()

# SQLite 需要 check_same_thread=False：FastAPI 在 thread pool 中執行同步路由
# timeout 是等待其他 transaction 釋放寫入鎖的秒數
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False, "timeout": 30} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
if engine.dialect.name == "sqlite":
    configure_sqlite(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：每個請求一個 Database Session

    Session 就是 ledger host 的 transaction，請求結束後一定會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：ledger 操作全部成功或全部不生效

    使用方式：
        @transactional
        def some_operation(db: Session, ...):
            match = Match(...)
            db.add(match)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback，不會留下部分修改
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數（或 db keyword）必須是 Session
        - 不要在函式內手動 commit
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except TicTacToeLedgerException as e:
            # 規則拒絕，不是非預期錯誤
            logger.warning(f"Operation {func.__name__} rejected: {e.code}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
