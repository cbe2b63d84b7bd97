"""
Order Service — 在庫ストア (Inventory Store)

商品の読み取りと、在庫の条件付き減算を提供する。

decrement_stock は「読んでから書く」ではなく 1 本の UPDATE で行う:

    UPDATE products SET stock = stock - :amount
    WHERE id = :id AND stock >= :amount

影響行数が 0 なら在庫不足（または商品なし）。同じ商品への同時減算が
両方成功して在庫を超えることはない。

このモジュールの関数はコミットしない。トランザクションの境界は呼び出し側が決める。
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .database import products
from .errors import InsufficientStock, ProductNotFound
from .models import Product


def _to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        price=row.price,
        stock=row.stock,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def get_product(session: AsyncSession, product_id: int) -> Product | None:
    result = await session.execute(select(products).where(products.c.id == product_id))
    row = result.fetchone()
    if not row:
        return None
    return _to_product(row)


async def get_products(
    session: AsyncSession, product_ids: Iterable[int]
) -> dict[int, Product]:
    """複数商品をまとめて取得する。存在しない ID は結果に含まれない。"""
    ids = set(product_ids)
    if not ids:
        return {}
    result = await session.execute(select(products).where(products.c.id.in_(ids)))
    return {row.id: _to_product(row) for row in result.fetchall()}


async def list_products(session: AsyncSession) -> list[Product]:
    result = await session.execute(select(products).order_by(products.c.id))
    return [_to_product(row) for row in result.fetchall()]


async def decrement_stock(session: AsyncSession, product_id: int, amount: int) -> None:
    """
    在庫を amount だけ減らす（比較と減算を 1 文で行う）。

    在庫が足りなければ InsufficientStock、商品が無ければ ProductNotFound。
    """
    result = await session.execute(
        update(products)
        .where(products.c.id == product_id, products.c.stock >= amount)
        .values(
            stock=products.c.stock - amount,
            updated_at=datetime.now(timezone.utc),
        )
    )
    if result.rowcount == 1:
        return

    # 減算できなかった理由を区別する
    name = await session.scalar(
        select(products.c.name).where(products.c.id == product_id)
    )
    if name is None:
        raise ProductNotFound(product_id)
    raise InsufficientStock(name)


async def create_product(
    session: AsyncSession, name: str, price: Decimal, stock: int
) -> Product:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        insert(products).values(
            name=name, price=price, stock=stock, created_at=now, updated_at=now
        )
    )
    return Product(
        id=result.inserted_primary_key[0],
        name=name,
        price=price,
        stock=stock,
        created_at=now,
        updated_at=now,
    )


async def delete_product(session: AsyncSession, product_id: int) -> bool:
    """商品を削除する。既存の注文明細には影響しない。"""
    result = await session.execute(delete(products).where(products.c.id == product_id))
    return result.rowcount > 0
