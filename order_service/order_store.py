"""
Order Service — 注文ストア (Order Store)

注文と明細を transaction_id をキーに保存・取得する。
create は注文ヘッダと全明細を同じトランザクション内で INSERT する。
コミットは呼び出し側（commands）が行うので、途中の状態が外から見えることはない。
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .database import order_items, orders
from .models import Order, OrderItem
from .status import OrderStatus


async def create(
    session: AsyncSession,
    transaction_id: str,
    items: Sequence[OrderItem],
    total_amount: Decimal,
    now: datetime,
) -> int:
    """注文（status=pending）と明細を INSERT し、採番された注文 ID を返す。"""
    result = await session.execute(
        insert(orders).values(
            transaction_id=transaction_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
    )
    order_id = result.inserted_primary_key[0]

    await session.execute(
        insert(order_items),
        [
            {
                "order_id": order_id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
            for item in items
        ],
    )
    return order_id


async def _load_items(
    session: AsyncSession, order_ids: Sequence[int]
) -> dict[int, list[OrderItem]]:
    items: dict[int, list[OrderItem]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return items
    result = await session.execute(
        select(order_items)
        .where(order_items.c.order_id.in_(order_ids))
        .order_by(order_items.c.order_id, order_items.c.id)
    )
    for row in result.fetchall():
        items[row.order_id].append(
            OrderItem(
                id=row.id,
                product_id=row.product_id,
                quantity=row.quantity,
                unit_price=row.unit_price,
            )
        )
    return items


def _to_order(row, items: list[OrderItem]) -> Order:
    return Order(
        id=row.id,
        transaction_id=row.transaction_id,
        items=tuple(items),
        total_amount=row.total_amount,
        status=OrderStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def _fetch_one(session: AsyncSession, where) -> Order | None:
    result = await session.execute(select(orders).where(where))
    row = result.fetchone()
    if not row:
        return None
    items = await _load_items(session, [row.id])
    return _to_order(row, items[row.id])


async def get_by_transaction_id(
    session: AsyncSession, transaction_id: str
) -> Order | None:
    return await _fetch_one(session, orders.c.transaction_id == transaction_id)


async def get_by_id(session: AsyncSession, order_id: int) -> Order | None:
    return await _fetch_one(session, orders.c.id == order_id)


async def get_all(session: AsyncSession) -> list[Order]:
    """全注文を明細付きで返す（ID 昇順）。"""
    result = await session.execute(select(orders).order_by(orders.c.id))
    rows = result.fetchall()
    items = await _load_items(session, [row.id for row in rows])
    return [_to_order(row, items[row.id]) for row in rows]


async def get_status(session: AsyncSession, order_id: int) -> OrderStatus | None:
    status = await session.scalar(select(orders.c.status).where(orders.c.id == order_id))
    if status is None:
        return None
    return OrderStatus(status)


async def update_status(
    session: AsyncSession,
    order_id: int,
    status: OrderStatus,
    now: datetime,
    expected_status: OrderStatus | None = None,
) -> bool:
    """
    ステータスと updated_at を更新する。

    expected_status を指定すると、現在のステータスが一致する場合だけ更新する。
    更新した行が無ければ False。
    """
    stmt = update(orders).where(orders.c.id == order_id)
    if expected_status is not None:
        stmt = stmt.where(orders.c.status == expected_status.value)
    result = await session.execute(stmt.values(status=status.value, updated_at=now))
    return result.rowcount > 0
