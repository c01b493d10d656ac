"""
Match Manager：管理井字棋比賽的完整生命週期

職責：
1. 建立比賽或加入正在等待的比賽（單一空位配對）
2. 執行落子並判斷勝負 / 平手
3. 取消（等待中退款，進行中認輸）
4. 關閉已結束的比賽
5. 查詢比賽

所有修改狀態的操作都使用 @transactional：棋盤、registry、pot、餘額、
事件要嘛全部 commit，要嘛全部不生效。
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from models import Match, MatchStatus, EventLog, GlobalRegistry
from core.state_machine import MatchStateMachine
from core.locks import with_match_lock
from core.escrow import EscrowEngine
from core import registry as player_registry
from core.exceptions import (
    GameAlreadyInProgress,
    GameAlreadyOver,
    GameNotInProgress,
    MatchNotFound,
    NoUninitializedOrWaitingGame,
    NotPlayersTurn,
    PlayerHasNotAnActiveGame,
    SignerDidNotOpenTheGameAccount,
    SignerIsNotPlayer,
    TileAlreadySet,
    TileOutOfBounds,
)
from services import board_service
from services.board_service import Mark, Outcome
from database import transactional

logger = logging.getLogger(__name__)

# 不是這場比賽玩家的 slot 編號
NOT_A_PLAYER = 2


def acting_slot(match: Match) -> int:
    return match.turn % 2


def signer_slot(match: Match, player: Optional[str]) -> int:
    if player is not None:
        for slot, identity in enumerate(match.players):
            if identity == player:
                return slot
    return NOT_A_PLAYER


class MatchManager:
    """Match 生命週期管理器"""

    @staticmethod
    @transactional
    def create_or_join(db: Session, player: str) -> Tuple[Match, bool]:
        """
        建立新比賽，或加入正在等待對手的比賽

        空位永遠是編號為 match_count 的比賽：不存在就建立，WAITING 就加入。

        流程：
        1. 鎖定 registry，拒絕已經在比賽中的玩家
        2. 找出編號為 match_count 的比賽
        3. 收取押注
        4. 建立（UNINITIALIZED -> WAITING）或加入（WAITING -> IN_PROGRESS）
        5. 登記玩家

        參數：
            db: SQLAlchemy Session
            player: 玩家身分

        返回：
            (Match, created) tuple，新建立的比賽 created 為 True

        異常：
            RegistryNotInitialized: 尚未執行 initialize_registry
            GameAlreadyInProgress: 玩家已經有進行中的比賽
            InsufficientFunds: 玩家餘額不足以支付押注
            NoUninitializedOrWaitingGame: 空位的狀態不符預期
        """
        # 1. Registry
        registry = player_registry.get_registry(db, lock=True)
        existing = player_registry.lookup(db, player)
        if existing is not None:
            raise GameAlreadyInProgress(f"Player {player} is already active in match {existing}")

        # 2. 空位
        number = registry.match_count
        match = with_match_lock(number, db).first()

        if match is None:
            return MatchManager._create(db, registry, number, player), True
        if match.is_waiting() and not match.closed:
            return MatchManager._join(db, registry, match, player), False

        raise NoUninitializedOrWaitingGame(
            f"Match {number} is {match.status.value}, nothing to create or join"
        )

    @staticmethod
    def _create(db: Session, registry: GlobalRegistry, number: int, player: str) -> Match:
        match = Match(
            number=number,
            player_one=player,
            player_two=None,
            turn=0,
            board=board_service.new_board(),
            status=MatchStatus.UNINITIALIZED,
            pot=0,
            paid=False,
        )
        db.add(match)
        db.flush()

        # 先收押注：餘額不足時什麼都不會留下
        EscrowEngine.collect_stake(db, registry, match, player)
        MatchStateMachine.transition(match, MatchStatus.WAITING, db)
        player_registry.register(db, player, number)

        db.add(EventLog(
            match_number=number,
            event_type="MATCH_CREATED",
            data={"player_one": player, "pot": match.pot}
        ))
        logger.info(f"Player {player} created match {number}, waiting for an opponent")
        return match

    @staticmethod
    def _join(db: Session, registry: GlobalRegistry, match: Match, player: str) -> Match:
        EscrowEngine.collect_stake(db, registry, match, player)

        match.player_two = player
        MatchStateMachine.transition(match, MatchStatus.IN_PROGRESS, db)

        # 下一次 create_or_join 開新的比賽
        registry.match_count += 1
        player_registry.register(db, player, match.number)

        db.add(EventLog(
            match_number=match.number,
            event_type="MATCH_JOINED",
            data={"player_one": match.player_one, "player_two": player, "pot": match.pot}
        ))
        logger.info(
            f"Player {player} joined match {match.number} against {match.player_one}, pot {match.pot}"
        )
        return match

    @staticmethod
    @transactional
    def move(db: Session, match_number: int, player: str, row: int, column: int) -> Match:
        """
        在 (row, column) 放下玩家的棋子

        檢查順序：
        1. 玩家已登記，且 entry 指向這場比賽
        2. 比賽狀態是 IN_PROGRESS
        3. 輪到這位玩家
        4. 格子在棋盤內且是空的

        異常：
            PlayerHasNotAnActiveGame, GameAlreadyOver, GameNotInProgress,
            NotPlayersTurn, TileOutOfBounds, TileAlreadySet, MatchNotFound
        """
        registry = player_registry.get_registry(db, lock=True)

        # 1. Registry 成員
        active_match = player_registry.lookup(db, player)
        if active_match is None or active_match != match_number:
            raise PlayerHasNotAnActiveGame(f"Player {player} has no active game numbered {match_number}")

        match = MatchManager._get_locked(db, match_number)

        # 2. 狀態
        if match.is_over():
            raise GameAlreadyOver()
        if not match.is_in_progress():
            raise GameNotInProgress(f"Match {match_number} is {match.status.value}")

        # 3. 回合
        turn_slot = acting_slot(match)
        if signer_slot(match, player) != turn_slot:
            raise NotPlayersTurn(f"Match {match_number}: it is {match.players[turn_slot]}'s turn")

        # 4. 格子
        if not board_service.in_bounds(row, column):
            raise TileOutOfBounds(row, column)
        if board_service.is_set(match.board, row, column):
            raise TileAlreadySet(row, column)

        # 5. 落子（重新指派，讓 JSON column 被標記為 dirty）
        mark = Mark.for_slot(turn_slot)
        match.board = board_service.place(match.board, row, column, mark)
        match.turn += 1

        db.add(EventLog(
            match_number=match_number,
            event_type="MOVE",
            data={"player": player, "row": row, "column": column, "mark": mark.value, "turn": match.turn}
        ))
        logger.info(f"Match {match_number}: player {turn_slot + 1} ({player}) moved to ({row}, {column}), turn {match.turn}")

        # 6. 終局判斷
        outcome = board_service.evaluate(match.board)
        if outcome == Outcome.WIN:
            logger.info(f"Match {match_number}: player {player} won the game")
            MatchManager._finish(db, registry, match, MatchStatus.WON, winner=player)
        elif outcome == Outcome.TIE:
            logger.info(f"Match {match_number}: game ends in a tie")
            MatchManager._finish(db, registry, match, MatchStatus.TIE)

        return match

    @staticmethod
    @transactional
    def cancel(db: Session, match_number: int, signer: str) -> Match:
        """
        取消等待中的比賽，或在進行中認輸

        - WAITING：只有建立者可以取消，pot 退回給建立者
        - IN_PROGRESS：signer 必須是玩家，另一位玩家獲勝

        異常：
            GameNotInProgress: 比賽已經結束
            SignerDidNotOpenTheGameAccount: 非建立者取消等待中的比賽
            SignerIsNotPlayer: 非玩家取消進行中的比賽
        """
        registry = player_registry.get_registry(db, lock=True)
        match = MatchManager._get_locked(db, match_number)

        if match.is_waiting():
            if signer != match.player_one:
                raise SignerDidNotOpenTheGameAccount(
                    f"Only {match.player_one} can cancel waiting match {match_number}"
                )
            logger.info(f"Match {match_number}: canceled by its creator while waiting")
            MatchManager._finish(db, registry, match, MatchStatus.CANCELED)
            # 取消的編號不再使用，下一位玩家拿到新的編號
            if registry.match_count == match.number:
                registry.match_count += 1
            return match

        if match.is_in_progress():
            slot = signer_slot(match, signer)
            if slot == NOT_A_PLAYER:
                raise SignerIsNotPlayer(f"{signer} is not a player of match {match_number}")
            winner = match.players[1 - slot]
            logger.info(f"Match {match_number}: {signer} forfeited, {winner} wins")
            MatchManager._finish(db, registry, match, MatchStatus.WON, winner=winner)
            return match

        raise GameNotInProgress(f"Match {match_number} is {match.status.value}")

    @staticmethod
    @transactional
    def close(db: Session, match_number: int, signer: str) -> Match:
        """
        由建立者封存一場已結束的比賽

        異常：
            GameAlreadyInProgress: 比賽尚未結束
            SignerDidNotOpenTheGameAccount: signer 不是建立者
            MatchNotFound: 比賽不存在或已經關閉
        """
        match = MatchManager._get_locked(db, match_number)

        if not match.is_over():
            raise GameAlreadyInProgress(f"Match {match_number} is {match.status.value}")
        if signer != match.player_one:
            raise SignerDidNotOpenTheGameAccount(
                f"{signer} did not open match {match_number}"
            )

        match.closed = True
        db.add(EventLog(
            match_number=match_number,
            event_type="MATCH_CLOSED",
            data={"signer": signer}
        ))
        logger.info(f"Match {match_number} closed by {signer}")
        return match

    @staticmethod
    def _finish(
        db: Session,
        registry: GlobalRegistry,
        match: Match,
        status: MatchStatus,
        winner: Optional[str] = None,
    ) -> None:
        """終止轉換：狀態、registry 清理、結算"""
        MatchStateMachine.transition(match, status, db, winner=winner)
        player_registry.unregister_all(db, match.number)
        EscrowEngine.settle(db, registry, match)

    @staticmethod
    def _get_locked(db: Session, match_number: int) -> Match:
        match = with_match_lock(match_number, db).first()
        if match is None or match.closed:
            raise MatchNotFound(match_number)
        return match

    @staticmethod
    def get_match(db: Session, match_number: int) -> Match:
        """
        取得比賽（包含已關閉的）

        異常：
            MatchNotFound: 比賽不存在
        """
        match = db.get(Match, match_number)
        if match is None:
            raise MatchNotFound(match_number)
        return match

    @staticmethod
    def get_events(db: Session, match_number: int) -> List[EventLog]:
        return db.query(EventLog).filter(
            EventLog.match_number == match_number
        ).order_by(EventLog.id).all()
