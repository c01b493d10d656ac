"""
Service 層

不做生命週期決策的計算工具：
- board_service：3x3 棋盤、勝負 / 平手判斷
- payout_service：手續費與獎金分配
- ledger_service：host 帳戶餘額
"""
