"""
自定義異常類別

集中管理所有 ledger 異常，方便 API 層統一處理
每個對外的異常都有固定的 `code`，等於類別名稱
"""


class TicTacToeLedgerException(Exception):
    """所有對外 ledger 異常的基類"""

    def __init__(self, message: str = ""):
        self.code = type(self).__name__
        super().__init__(message or self.default_message)

    default_message = "Ledger operation rejected"


# ============ 異常分類 ============

class ValidationError(TicTacToeLedgerException):
    """請求本身對目前棋盤不合法"""
    pass


class StateConflict(TicTacToeLedgerException):
    """Match 或 registry 處於錯誤的生命週期狀態"""
    pass


class AuthorizationError(TicTacToeLedgerException):
    """Signer 沒有執行這個操作的權限"""
    pass


class RegistryConflict(TicTacToeLedgerException):
    """Registry 的紀錄與請求的操作不符"""
    pass


class NotFound(TicTacToeLedgerException):
    """資料不存在"""
    pass


class FundsError(TicTacToeLedgerException):
    """餘額不足以支付押注或提領"""
    pass


# ============ 驗證異常 ============

class TileOutOfBounds(ValidationError):
    default_message = "Attempt to play outside the board limits."

    def __init__(self, row, column):
        self.row = row
        self.column = column
        super().__init__(f"Tile ({row}, {column}) is outside the board limits")


class TileAlreadySet(ValidationError):
    default_message = "Attempt to play on an occupied tile."

    def __init__(self, row, column):
        self.row = row
        self.column = column
        super().__init__(f"Tile ({row}, {column}) is already set")


class NotPlayersTurn(ValidationError):
    default_message = "Not the current player's turn."


class InvalidAmount(ValidationError):
    default_message = "Amount must be a positive number of units."


# ============ 狀態衝突 ============

class GameAlreadyOver(StateConflict):
    default_message = "Attempt to play in a game that has already ended."


class GameNotInProgress(StateConflict):
    default_message = "Game not in progress."


class NoUninitializedOrWaitingGame(StateConflict):
    default_message = "No uninitialized or waiting game."


class InvalidStateTransition(StateConflict):
    default_message = "Illegal match state transition."


class MatchAlreadyPaid(StateConflict):
    default_message = "Match pot has already been paid out."

    def __init__(self, match_number):
        self.match_number = match_number
        super().__init__(f"Match {match_number} has already been paid out")


class RegistryAlreadyInitialized(StateConflict):
    default_message = "Registry already initialized."


# ============ 權限異常 ============

class SignerIsNotPlayer(AuthorizationError):
    default_message = "The signer is not a player."


class SignerDidNotOpenTheGameAccount(AuthorizationError):
    default_message = "Player did not open the game account."


class SignerIsNotOwner(AuthorizationError):
    default_message = "The signer is not the registry owner."


# ============ Registry 一致性 ============

class PlayerHasNotAnActiveGame(RegistryConflict):
    default_message = "Player has not an active game."


class GameAlreadyInProgress(RegistryConflict):
    """玩家已經有 registry entry，或關閉仍在進行的比賽"""
    default_message = "Game already in progress."


# ============ 資料不存在 ============

class MatchNotFound(NotFound):
    def __init__(self, match_number):
        self.match_number = match_number
        super().__init__(f"Match {match_number} not found")


class RegistryNotInitialized(NotFound):
    default_message = "Registry has not been initialized."


# ============ 資金異常 ============

class InsufficientFunds(FundsError):
    default_message = "Not enough funds."

    def __init__(self, identity, required, available):
        self.identity = identity
        self.required = required
        self.available = available
        super().__init__(
            f"{identity} needs {required} units but only {available} are available"
        )


# ============ 內部錯誤 ============

class InternalLedgerError(Exception):
    """Ledger 內部的不變量被破壞，不是呼叫者的錯"""
    pass


class RegistryInconsistency(InternalLedgerError):
    """unregister_all 找不到應該存在的 entry"""

    def __init__(self, match_number):
        self.match_number = match_number
        super().__init__(f"Match {match_number} not found in the registry")
