"""
HTTP 介面的 Pydantic request / response schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import MatchStatus


# ============ Registry ============

class RegistryInit(BaseModel):
    fee_percent: Optional[int] = Field(None, ge=0, le=100)
    fixed_bet: Optional[int] = Field(None, ge=0)
    owner: Optional[str] = Field(None, min_length=1, max_length=128)
    economic_mode: Optional[bool] = None
    charge_fee_on_waiting_cancel: Optional[bool] = None


class ActivePlayer(BaseModel):
    player: str
    match_number: int


class RegistryResponse(BaseModel):
    match_count: int
    economic_mode: bool
    fee_percent: int
    fixed_bet: int
    owner: Optional[str]
    charge_fee_on_waiting_cancel: bool
    fee_balance: int
    active_players: List[ActivePlayer] = []


class FeeWithdrawal(BaseModel):
    signer: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., gt=0)


# ============ Matches ============

class JoinRequest(BaseModel):
    player: str = Field(..., min_length=1, max_length=128)


class MoveRequest(BaseModel):
    player: str = Field(..., min_length=1, max_length=128)
    # 邊界由 ledger 檢查，才能回傳 TileOutOfBounds
    row: int
    column: int


class SignerRequest(BaseModel):
    signer: str = Field(..., min_length=1, max_length=128)


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    number: int
    players: List[Optional[str]]
    turn: int
    board: List[List[Optional[str]]]
    status: MatchStatus
    winner: Optional[str] = None
    pot: int
    paid: bool
    closed: bool


class JoinResponse(BaseModel):
    created: bool
    match: MatchResponse


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_number: Optional[int]
    event_type: str
    data: Dict[str, Any]
    created_at: Optional[datetime] = None


# ============ Accounts ============

class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0)


class AccountResponse(BaseModel):
    identity: str
    balance: int
