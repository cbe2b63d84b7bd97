"""
Order Service — 注文受付と在庫引き当て

注文の検証・合計計算・永続化・在庫減算を 1 つのトランザクションで行う。
"""
