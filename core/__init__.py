"""
Ledger 核心邏輯

這個 package 包含所有會改變狀態的部分：
- registry：活躍玩家 -> match 的索引與 registry 紀錄
- state_machine：合法的 match 狀態轉換
- match_manager：建立 / 加入、落子、取消、關閉
- escrow：押注、結算、手續費提領
- locks：序列化存取用的鎖
"""
