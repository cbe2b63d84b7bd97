"""
Order Service — 注文ステータス

状態:
    pending (初期) / confirmed / shipped / delivered / cancelled

既定では任意の状態から任意の状態へ変更できる（既存システムの挙動）。
厳格モードでは以下の前進のみのグラフに制限する:

    pending   → confirmed, cancelled
    confirmed → shipped, cancelled
    shipped   → delivered
    delivered, cancelled は終端
"""

from enum import Enum

from .errors import InvalidStatus, InvalidTransition


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


STRICT_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def parse_status(value: object) -> OrderStatus:
    """文字列をステータスに変換する。列挙外なら InvalidStatus。"""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatus(value) from None


def check_transition(
    current: OrderStatus, requested: OrderStatus, strict: bool = False
) -> None:
    """遷移が許可されなければ InvalidTransition を送出する。"""
    if not strict or current == requested:
        return
    if requested not in STRICT_TRANSITIONS[current]:
        raise InvalidTransition(current.value, requested.value)
