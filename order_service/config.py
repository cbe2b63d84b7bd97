"""
Order Service — 設定

すべて環境変数から読み込む。未設定ならローカル開発用のデフォルト値を使う。
"""

import os


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./orders.db")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
ORDER_EVENTS_CHANNEL = os.environ.get("ORDER_EVENTS_CHANNEL", "order_events")

# True にすると前進のみの状態遷移グラフを強制する
STRICT_STATUS_TRANSITIONS = _flag("STRICT_STATUS_TRANSITIONS")

# SQLite で書き込みロック待ちをする秒数
SQLITE_BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "30"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
