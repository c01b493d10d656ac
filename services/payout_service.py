"""
獎金服務：已結束比賽的託管分配

純計算邏輯，不移動資金。core.escrow 的託管引擎依照這裡回傳的
Settlement 移動餘額。

分配規則：
┌──────────────────┬──────────────────────────────────────────────┐
│ 結果             │ payout = pot - fee 的分配                    │
├──────────────────┼──────────────────────────────────────────────┤
│ WIN              │ 全部給勝者                                   │
│ TIE              │ 每人 payout // 2，奇數餘額進 fee pool        │
│ CANCELED_WAITING │ 全部退回建立者                               │
└──────────────────┴──────────────────────────────────────────────┘
"""
import enum
from dataclasses import dataclass, field
from typing import Dict, Optional


class SettlementKind(str, enum.Enum):
    WIN = "win"
    TIE = "tie"
    CANCELED_WAITING = "canceled_waiting"


@dataclass(frozen=True)
class Settlement:
    pot: int
    fee: int
    payout_amount: int
    payouts: Dict[str, int] = field(default_factory=dict)
    # 平手分配的餘數，與 fee 一起進 fee pool
    remainder: int = 0

    @property
    def house_amount(self) -> int:
        return self.fee + self.remainder

    def is_balanced(self) -> bool:
        return (
            self.fee + self.payout_amount == self.pot
            and sum(self.payouts.values()) + self.remainder == self.payout_amount
        )


def calculate_fee(pot: int, fee_percent: int) -> int:
    """
    從 pot 收取的手續費，無條件捨去

    範例：
        calculate_fee(200, 5) -> 10
        calculate_fee(199, 5) -> 9
    """
    if pot < 0:
        raise ValueError(f"pot must not be negative, got {pot}")
    if not 0 <= fee_percent <= 100:
        raise ValueError(f"fee_percent must be within 0..100, got {fee_percent}")
    return pot * fee_percent // 100


def calculate_settlement(
    pot: int,
    fee_percent: int,
    kind: SettlementKind,
    player_one: str,
    player_two: Optional[str] = None,
    winner: Optional[str] = None,
) -> Settlement:
    """
    計算已結束比賽的手續費與每位玩家的獎金

    參數：
        pot: 託管中的金額
        fee_percent: 手續費率，0..100
        kind: 比賽結束的方式
        player_one: 建立者
        player_two: 加入者（TIE 時必填）
        winner: 勝者（WIN 時必填）

    返回：
        Settlement，fee + payout_amount == pot
    """
    fee = calculate_fee(pot, fee_percent)
    payout_amount = pot - fee
    payouts: Dict[str, int] = {}
    remainder = 0

    if kind == SettlementKind.CANCELED_WAITING:
        payouts[player_one] = payout_amount
    elif kind == SettlementKind.TIE:
        if player_two is None:
            raise ValueError("a tie needs both players")
        share = payout_amount // 2
        payouts[player_one] = share
        payouts[player_two] = share
        remainder = payout_amount - 2 * share
    elif kind == SettlementKind.WIN:
        if winner is None or winner not in (player_one, player_two):
            raise ValueError(f"winner {winner!r} is not a player of the match")
        payouts[winner] = payout_amount
    else:
        raise ValueError(f"unknown settlement kind {kind!r}")

    return Settlement(
        pot=pot,
        fee=fee,
        payout_amount=payout_amount,
        payouts=payouts,
        remainder=remainder,
    )
