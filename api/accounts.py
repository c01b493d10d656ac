"""
Account API Endpoints

Host 端餘額：入金與查詢餘額
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import DepositRequest, AccountResponse
from services import ledger_service
from core.exceptions import TicTacToeLedgerException
from api.errors import to_http_exception

router = APIRouter(prefix="/api/accounts", tags=["accounts"])
logger = logging.getLogger(__name__)


@router.get("/{identity}", response_model=AccountResponse)
def get_account(identity: str, db: Session = Depends(get_db)):
    return AccountResponse(identity=identity, balance=ledger_service.get_balance(identity, db))


@router.post("/{identity}/deposit", response_model=AccountResponse)
def deposit(identity: str, payload: DepositRequest, db: Session = Depends(get_db)):
    try:
        account = ledger_service.deposit(identity, payload.amount, db)
        db.commit()
        return AccountResponse(identity=account.identity, balance=account.balance)

    except TicTacToeLedgerException as e:
        db.rollback()
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to deposit: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")
