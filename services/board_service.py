"""
棋盤服務：3x3 井字棋棋盤的純邏輯

棋盤是 list of lists，可以直接存進 JSON column。
每一格是 None 或 Mark 的值（slot 0 為 "X"，slot 1 為 "O"）。
不存取資料庫。
"""
import enum
from typing import List, Optional, Tuple

BOARD_SIZE = 3

Board = List[List[Optional[str]]]
Line = Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]


class Mark(str, enum.Enum):
    X = "X"
    O = "O"

    @classmethod
    def for_slot(cls, slot: int) -> "Mark":
        return (cls.X, cls.O)[slot]


class Outcome(str, enum.Enum):
    ONGOING = "ongoing"
    WIN = "win"
    TIE = "tie"


# 三列、三行、兩條對角線
LINES: Tuple[Line, ...] = (
    tuple(((i, 0), (i, 1), (i, 2)) for i in range(BOARD_SIZE))
    + tuple(((0, i), (1, i), (2, i)) for i in range(BOARD_SIZE))
    + (((0, 0), (1, 1), (2, 2)), ((0, 2), (1, 1), (2, 0)))
)


def new_board() -> Board:
    return [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]


def in_bounds(row: int, column: int) -> bool:
    return 0 <= row < BOARD_SIZE and 0 <= column < BOARD_SIZE


def is_set(board: Board, row: int, column: int) -> bool:
    return board[row][column] is not None


def place(board: Board, row: int, column: int, mark: Mark) -> Board:
    """
    回傳在 (row, column) 放上 mark 的新棋盤

    邊界與格子是否已佔用由呼叫者檢查；傳入的棋盤不會被修改。
    """
    updated = [list(r) for r in board]
    updated[row][column] = Mark(mark).value
    return updated


def is_winning_line(board: Board, line: Line) -> bool:
    (r1, c1), (r2, c2), (r3, c3) = line
    first = board[r1][c1]
    return first is not None and first == board[r2][c2] == board[r3][c3]


def winning_mark(board: Board) -> Optional[Mark]:
    for line in LINES:
        if is_winning_line(board, line):
            r, c = line[0]
            return Mark(board[r][c])
    return None


def is_full(board: Board) -> bool:
    return all(cell is not None for row in board for cell in row)


def evaluate(board: Board) -> Outcome:
    """
    判斷棋盤結果

    有連線就是勝利；沒有連線但棋盤已滿是平手；否則比賽繼續。
    """
    if winning_mark(board) is not None:
        return Outcome.WIN
    if is_full(board):
        return Outcome.TIE
    return Outcome.ONGOING
