"""
Registry API Endpoints

職責：
1. 初始化唯一的 registry 紀錄
2. 查詢 registry（計數器、託管參數、活躍玩家）
3. Owner 提領手續費
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import RegistryInit, RegistryResponse, ActivePlayer, FeeWithdrawal
from core import registry as player_registry
from core.escrow import EscrowEngine
from core.exceptions import TicTacToeLedgerException
from api.errors import to_http_exception

router = APIRouter(prefix="/api/registry", tags=["registry"])
logger = logging.getLogger(__name__)


def _registry_response(db: Session) -> RegistryResponse:
    registry = player_registry.get_registry(db)
    return RegistryResponse(
        match_count=registry.match_count,
        economic_mode=registry.economic_mode,
        fee_percent=registry.fee_percent,
        fixed_bet=registry.fixed_bet,
        owner=registry.owner,
        charge_fee_on_waiting_cancel=registry.charge_fee_on_waiting_cancel,
        fee_balance=registry.fee_balance,
        active_players=[
            ActivePlayer(player=player, match_number=number)
            for player, number in player_registry.active_players(db)
        ],
    )


@router.post("", response_model=RegistryResponse, status_code=201)
def initialize_registry(payload: RegistryInit, db: Session = Depends(get_db)):
    """
    建立 registry（只能一次）

    未提供的欄位使用 LEDGER_* 設定
    """
    try:
        player_registry.initialize_registry(
            db,
            fee_percent=payload.fee_percent,
            fixed_bet=payload.fixed_bet,
            owner=payload.owner,
            economic_mode=payload.economic_mode,
            charge_fee_on_waiting_cancel=payload.charge_fee_on_waiting_cancel,
        )
        return _registry_response(db)

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to initialize registry: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=RegistryResponse)
def get_registry(db: Session = Depends(get_db)):
    try:
        return _registry_response(db)
    except TicTacToeLedgerException as e:
        raise to_http_exception(e)


@router.post("/fees/withdraw", response_model=RegistryResponse)
def withdraw_fees(payload: FeeWithdrawal, db: Session = Depends(get_db)):
    """
    僅限 owner：把累積的手續費移到 owner 的帳戶
    """
    try:
        EscrowEngine.withdraw_fees(db, payload.signer, payload.amount)
        return _registry_response(db)

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to withdraw fees: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
