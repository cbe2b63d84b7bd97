"""
Order Service — コマンドハンドラ (Write 側)

注文の作成とステータス変更を処理する。

注文作成の流れ:
  1. リクエストを PlaceOrderRequest に変換（空の明細・0 以下の数量はここで弾く）
  2. 明細ごとに商品を取得し、在庫が足りるか確認（読み取りのみ）
  3. 商品の現在価格を明細にスナップショットし、合計金額を Decimal で計算
  4. transaction_id を採番
  5. 注文 + 明細の INSERT と在庫の条件付き減算を 1 トランザクションで実行
     └─ どれか 1 つでも失敗したらロールバックして何も残さない
  6. コミット後に OrderPlaced イベントを Redis に発行

手順 2 の在庫確認とコミットの間に他の注文が割り込む可能性があるので、
手順 5 の減算はストア側で在庫を再確認する（inventory_store.decrement_stock）。
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import redis.asyncio as aioredis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import inventory_store, order_store
from .database import MAX_INTEGER, MAX_ORDER_TOTAL
from .errors import (
    InsufficientStock,
    InvalidRequest,
    OrderNotFound,
    OrderServiceError,
    PersistenceFailure,
    ProductNotFound,
)
from .events import OrderPlaced, OrderPlacedItem, OrderStatusChanged
from .models import Order, OrderItem, Product
from .publisher import publish_event
from .schemas import PlaceOrderRequest, ProductCreate
from .status import OrderStatus, check_transition, parse_status

logger = logging.getLogger(__name__)


async def place_order(
    session: AsyncSession,
    redis: aioredis.Redis | None,
    lines: PlaceOrderRequest | Iterable,
) -> Order:
    """
    注文作成コマンド

    lines は PlaceOrderRequest か (product_id, quantity) の列。
    成功すれば保存済みの注文を返す。失敗時は InvalidRequest / ProductNotFound /
    InsufficientStock / PersistenceFailure のいずれかを送出し、状態は一切変わらない。
    """
    if isinstance(lines, PlaceOrderRequest):
        request = lines
    else:
        request = PlaceOrderRequest.from_lines(lines)

    try:
        # 1. 商品の存在と在庫を明細の順に確認する
        found = await inventory_store.get_products(
            session, (line.product_id for line in request.order_items)
        )
        items: list[OrderItem] = []
        for line in request.order_items:
            product = found.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            if line.quantity > product.stock:
                raise InsufficientStock(product.name)
            items.append(
                OrderItem(
                    product_id=product.id,
                    quantity=line.quantity,
                    unit_price=product.price,
                )
            )

        # 2. 合計金額（注文時点の単価で計算）
        total_amount = sum((item.subtotal for item in items), Decimal("0"))
        if total_amount > MAX_ORDER_TOTAL:
            raise InvalidRequest(
                f"Order total {total_amount} exceeds the maximum of {MAX_ORDER_TOTAL}"
            )
        transaction_id = str(uuid4())
        now = datetime.now(timezone.utc)

        # 3. 注文の保存と在庫減算（同じトランザクション）
        order_id = await order_store.create(
            session, transaction_id, items, total_amount, now
        )
        # 商品 ID 順に減算して、同時実行される注文同士の行ロック順をそろえる
        for line in sorted(request.order_items, key=lambda item: item.product_id):
            await inventory_store.decrement_stock(
                session, line.product_id, line.quantity
            )

        order = await order_store.get_by_id(session, order_id)
        await session.commit()
    except OrderServiceError as e:
        await session.rollback()
        logger.info("Order rejected: %s", e)
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning("Order commit failed, rolled back: %s", e)
        raise PersistenceFailure(f"Could not place order: {e}") from e

    logger.info(
        "Order placed: id=%s transaction_id=%s total=%s",
        order.id,
        order.transaction_id,
        order.total_amount,
    )

    # 4. コミット後にイベントを発行
    await publish_event(
        redis,
        OrderPlaced(
            order_id=order.id,
            transaction_id=order.transaction_id,
            items=[
                OrderPlacedItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in order.items
            ],
            total_amount=order.total_amount,
            timestamp=now,
        ),
    )
    return order


async def transition_order_status(
    session: AsyncSession,
    redis: aioredis.Redis | None,
    order_id: int,
    requested_status: str | OrderStatus,
    strict: bool = False,
) -> Order:
    """
    注文ステータス変更コマンド

    未知のステータスは注文を探す前に InvalidStatus で弾く。
    strict=False（既定）ではどの状態からどの状態へも変更できる。
    """
    status = parse_status(requested_status)
    # Integer 列に入らない ID の注文は存在しない
    if not 1 <= order_id <= MAX_INTEGER:
        raise OrderNotFound(order_id)

    try:
        current = await order_store.get_status(session, order_id)
        if current is None:
            raise OrderNotFound(order_id)
        check_transition(current, status, strict)

        now = datetime.now(timezone.utc)
        updated = await order_store.update_status(
            session,
            order_id,
            status,
            now,
            expected_status=current if strict else None,
        )
        if not updated:
            if await order_store.get_status(session, order_id) is None:
                raise OrderNotFound(order_id)
            raise PersistenceFailure(
                f"Order {order_id} was modified concurrently; retry the request"
            )

        order = await order_store.get_by_id(session, order_id)
        await session.commit()
    except OrderServiceError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning("Status update failed, rolled back: %s", e)
        raise PersistenceFailure(f"Could not update order status: {e}") from e

    logger.info("Order %s status: %s -> %s", order_id, current.value, status.value)

    await publish_event(
        redis,
        OrderStatusChanged(
            order_id=order.id,
            transaction_id=order.transaction_id,
            previous_status=current.value,
            status=status.value,
            timestamp=now,
        ),
    )
    return order


# ── 商品管理 ─────────────────────────────────────


async def add_product(session: AsyncSession, data: ProductCreate) -> Product:
    """商品登録コマンド"""
    try:
        product = await inventory_store.create_product(
            session, data.name, data.price, data.stock
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceFailure(f"Could not add product: {e}") from e

    logger.info("Product added: id=%s name=%s", product.id, product.name)
    return product


async def remove_product(session: AsyncSession, product_id: int) -> None:
    """商品削除コマンド。過去の注文明細はそのまま残る。"""
    if not 1 <= product_id <= MAX_INTEGER:
        raise ProductNotFound(product_id)
    try:
        deleted = await inventory_store.delete_product(session, product_id)
        if not deleted:
            raise ProductNotFound(product_id)
        await session.commit()
    except OrderServiceError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceFailure(f"Could not delete product: {e}") from e

    logger.info("Product deleted: id=%s", product_id)
