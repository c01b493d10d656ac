"""
Match API Endpoints

重點：
1. 每個修改狀態的 endpoint 都是一次 MatchManager 呼叫，也就是一個 transaction
2. Ledger 異常以 {"code", "message"} 回傳，HTTP status 依異常分類決定
3. 比賽的完成紀錄可以從 /events 讀取
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    JoinRequest,
    JoinResponse,
    MoveRequest,
    SignerRequest,
    MatchResponse,
    EventResponse,
)
from core.match_manager import MatchManager
from core.exceptions import TicTacToeLedgerException
from api.errors import to_http_exception

router = APIRouter(prefix="/api/matches", tags=["matches"])
logger = logging.getLogger(__name__)


@router.post("/join", response_model=JoinResponse)
def create_or_join(payload: JoinRequest, db: Session = Depends(get_db)):
    """
    建立比賽或加入正在等待對手的比賽

    返回：
        - created: 新開比賽時為 True
        - match: 操作後的比賽
    """
    try:
        match, created = MatchManager.create_or_join(db, payload.player)
        return JoinResponse(created=created, match=MatchResponse.model_validate(match))

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create or join a match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{number}", response_model=MatchResponse)
def get_match(number: int, db: Session = Depends(get_db)):
    try:
        return MatchResponse.model_validate(MatchManager.get_match(db, number))
    except TicTacToeLedgerException as e:
        raise to_http_exception(e)


@router.post("/{number}/moves", response_model=MatchResponse)
def make_move(number: int, payload: MoveRequest, db: Session = Depends(get_db)):
    """
    玩家落子

    獲勝或填滿棋盤的一步會在同一個請求內結算 pot
    """
    try:
        match = MatchManager.move(db, number, payload.player, payload.row, payload.column)
        return MatchResponse.model_validate(match)

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to apply move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{number}/cancel", response_model=MatchResponse)
def cancel_match(number: int, payload: SignerRequest, db: Session = Depends(get_db)):
    try:
        match = MatchManager.cancel(db, number, payload.signer)
        return MatchResponse.model_validate(match)

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to cancel match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{number}/close", response_model=MatchResponse)
def close_match(number: int, payload: SignerRequest, db: Session = Depends(get_db)):
    try:
        match = MatchManager.close(db, number, payload.signer)
        return MatchResponse.model_validate(match)

    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to close match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{number}/events", response_model=List[EventResponse])
def get_match_events(number: int, db: Session = Depends(get_db)):
    try:
        MatchManager.get_match(db, number)
        return [EventResponse.model_validate(e) for e in MatchManager.get_events(db, number)]
    except TicTacToeLedgerException as e:
        raise to_http_exception(e)
