"""
帳戶服務：外部 ledger host 持有的餘額

押注從這些帳戶扣除，獎金發回這些帳戶。
這裡的函式只 flush，commit 由外層 transaction 負責
"""
import logging

from sqlalchemy.orm import Session

from models import LedgerAccount
from core.exceptions import InsufficientFunds, InvalidAmount

logger = logging.getLogger(__name__)


def get_account(identity: str, db: Session) -> LedgerAccount:
    """取得 identity 的帳戶，不存在就開一個餘額為 0 的帳戶"""
    account = db.get(LedgerAccount, identity)
    if account is None:
        account = LedgerAccount(identity=identity, balance=0)
        db.add(account)
        db.flush()
    return account


def get_balance(identity: str, db: Session) -> int:
    account = db.get(LedgerAccount, identity)
    return account.balance if account else 0


def credit(identity: str, amount: int, db: Session) -> LedgerAccount:
    if amount < 0:
        raise InvalidAmount(f"Cannot credit a negative amount ({amount})")
    account = get_account(identity, db)
    account.balance += amount
    db.flush()
    return account


def debit(identity: str, amount: int, db: Session) -> LedgerAccount:
    """
    從帳戶扣除 amount

    異常：
        InsufficientFunds: 餘額少於 amount
    """
    if amount < 0:
        raise InvalidAmount(f"Cannot debit a negative amount ({amount})")
    account = get_account(identity, db)
    if account.balance < amount:
        raise InsufficientFunds(identity, amount, account.balance)
    account.balance -= amount
    db.flush()
    return account


def deposit(identity: str, amount: int, db: Session) -> LedgerAccount:
    """從 ledger 外部入金（host faucet）"""
    if amount <= 0:
        raise InvalidAmount()
    account = credit(identity, amount, db)
    logger.info(f"Deposited {amount} units to {identity}, balance {account.balance}")
    return account
