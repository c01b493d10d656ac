"""
託管引擎：押注進、手續費與獎金出

職責：
1. 把玩家的固定押注收進 match pot
2. 每場結束的比賽只結算一次（fee pool + 玩家獎金）
3. 結算時發出完成紀錄
4. 讓 registry owner 提領累積的手續費

所有函式都在呼叫者的 transaction 內執行；任何一步失敗整個操作都會
rollback，pot 不會只付一半。
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from models import GlobalRegistry, Match, MatchStatus, EventLog
from core.exceptions import (
    InsufficientFunds,
    InternalLedgerError,
    InvalidAmount,
    MatchAlreadyPaid,
    SignerIsNotOwner,
)
from core.registry import get_registry
from services import ledger_service
from services.payout_service import Settlement, SettlementKind, calculate_settlement
from database import transactional

logger = logging.getLogger(__name__)

COMPLETION_EVENT = "MATCH_COMPLETED"


class EscrowEngine:
    """玩家帳戶、match pot 與 fee pool 之間的資金移動"""

    @staticmethod
    def collect_stake(db: Session, registry: GlobalRegistry, match: Match, player: str) -> int:
        """
        從玩家帳戶扣除固定押注，放進 match pot

        返回：
            收取的金額（非 economic mode 時為 0）

        異常：
            InsufficientFunds: 玩家餘額不足以支付押注
        """
        if not registry.economic_mode or registry.fixed_bet <= 0:
            return 0

        bet = registry.fixed_bet
        ledger_service.debit(player, bet, db)
        match.pot += bet

        db.add(EventLog(
            match_number=match.number,
            event_type="STAKE_COLLECTED",
            data={"player": player, "amount": bet, "pot": match.pot}
        ))
        logger.info(f"{bet} units added to the pot of match {match.number} by {player}, pot {match.pot}")
        return bet

    @staticmethod
    def settle(db: Session, registry: GlobalRegistry, match: Match) -> Settlement:
        """
        結算一場已結束的比賽

        流程：
        1. 已經付過款就拒絕
        2. 依 pot 與最終狀態計算分配
        3. 手續費（加上平手餘數）移入 fee pool
        4. 發放每位玩家的獎金
        5. 標記 paid 並發出完成紀錄

        參數：
            registry: 已鎖定的 GlobalRegistry，手續費率與等待取消的收費
                方式都從這裡讀取
            match: 已進入終止狀態的 Match

        異常：
            MatchAlreadyPaid: 這場比賽已經結算過
            InternalLedgerError: 分配金額加總不等於 pot
        """
        # 1. 防止重複付款
        if match.paid:
            raise MatchAlreadyPaid(match.number)

        # 2. 分配
        kind = _settlement_kind(match)
        fee_percent = registry.fee_percent if registry.economic_mode else 0
        if kind == SettlementKind.CANCELED_WAITING and not registry.charge_fee_on_waiting_cancel:
            fee_percent = 0

        settlement = calculate_settlement(
            pot=match.pot,
            fee_percent=fee_percent,
            kind=kind,
            player_one=match.player_one,
            player_two=match.player_two,
            winner=match.winner,
        )
        if not settlement.is_balanced():
            raise InternalLedgerError(f"Settlement of match {match.number} does not balance: {settlement}")

        # 3. Fee pool
        match.pot -= settlement.house_amount
        registry.fee_balance += settlement.house_amount
        if settlement.house_amount:
            logger.info(
                f"{settlement.fee} units fee (+{settlement.remainder} remainder) "
                f"from match {match.number} to the fee pool"
            )

        # 4. 獎金
        for player, amount in settlement.payouts.items():
            ledger_service.credit(player, amount, db)
            match.pot -= amount
            logger.info(f"{amount} units paid out to {player} for match {match.number} ({kind.value})")

        if match.pot != 0:
            raise InternalLedgerError(f"Match {match.number} pot not emptied, {match.pot} left")

        # 5. Paid flag + 完成紀錄
        match.paid = True
        db.add(EventLog(
            match_number=match.number,
            event_type="PAYOUT",
            data={
                "kind": kind.value,
                "pot": settlement.pot,
                "fee": settlement.fee,
                "remainder": settlement.remainder,
                "payouts": settlement.payouts,
            }
        ))
        db.add(EventLog(
            match_number=match.number,
            event_type=COMPLETION_EVENT,
            data={
                "player_one": match.player_one,
                "player_two": match.player_two,
                "winner": match.winner,
            }
        ))
        db.flush()
        return settlement

    @staticmethod
    @transactional
    def withdraw_fees(db: Session, signer: str, amount: int) -> GlobalRegistry:
        """
        從 fee pool 提領 amount 到 owner 的帳戶

        異常：
            SignerIsNotOwner: signer 不是設定的 owner
            InvalidAmount: amount 不是正數
            InsufficientFunds: fee pool 餘額少於 amount
        """
        registry = get_registry(db, lock=True)

        if registry.owner is None or signer != registry.owner:
            raise SignerIsNotOwner(f"{signer} is not allowed to withdraw fees")
        if amount <= 0:
            raise InvalidAmount()
        if registry.fee_balance < amount:
            raise InsufficientFunds("fee pool", amount, registry.fee_balance)

        registry.fee_balance -= amount
        ledger_service.credit(signer, amount, db)

        db.add(EventLog(
            event_type="FEES_WITHDRAWN",
            data={"owner": signer, "amount": amount, "fee_balance": registry.fee_balance}
        ))
        logger.info(f"Owner {signer} withdrew {amount} units, fee pool {registry.fee_balance}")
        return registry


def _settlement_kind(match: Match) -> SettlementKind:
    if match.status == MatchStatus.CANCELED:
        return SettlementKind.CANCELED_WAITING
    if match.status == MatchStatus.TIE:
        return SettlementKind.TIE
    if match.status == MatchStatus.WON:
        return SettlementKind.WIN
    raise InternalLedgerError(f"Match {match.number} is not terminal ({match.status.value})")


def completion_record(db: Session, match_number: int) -> Optional[dict]:
    event = db.query(EventLog).filter(
        EventLog.match_number == match_number,
        EventLog.event_type == COMPLETION_EVENT
    ).first()
    return event.data if event else None
