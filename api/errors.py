"""
Ledger 異常 -> HTTP error 的轉換，所有 router 共用
"""
from fastapi import HTTPException

from core.exceptions import (
    TicTacToeLedgerException,
    ValidationError,
    StateConflict,
    AuthorizationError,
    RegistryConflict,
    NotFound,
    FundsError,
)

STATUS_BY_CATEGORY = (
    (NotFound, 404),
    (AuthorizationError, 403),
    (FundsError, 402),
    (ValidationError, 400),
    (StateConflict, 409),
    (RegistryConflict, 409),
)


def to_http_exception(exc: TicTacToeLedgerException) -> HTTPException:
    """
    把 ledger 異常轉成 HTTPException

    Error code 原樣回傳，client 可以依此判斷：
        {"detail": {"code": "TileAlreadySet", "message": "..."}}
    """
    status_code = 400
    for category, code in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc)}
    )
