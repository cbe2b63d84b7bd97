"""
Order Service — クエリハンドラ (Read 側)

副作用のない読み取り。ストアへそのまま委譲し、見つからなければ例外にする。
"""

from sqlalchemy.ext.asyncio import AsyncSession

from . import inventory_store, order_store
from .database import MAX_INTEGER
from .errors import OrderNotFound, ProductNotFound
from .models import Order, Product


async def list_orders(session: AsyncSession) -> list[Order]:
    """全注文を明細付きで取得する。"""
    return await order_store.get_all(session)


async def get_order_by_transaction_id(
    session: AsyncSession, transaction_id: str
) -> Order:
    order = await order_store.get_by_transaction_id(session, transaction_id)
    if order is None:
        raise OrderNotFound(transaction_id)
    return order


async def list_products(session: AsyncSession) -> list[Product]:
    return await inventory_store.list_products(session)


async def get_product(session: AsyncSession, product_id: int) -> Product:
    if not 1 <= product_id <= MAX_INTEGER:
        raise ProductNotFound(product_id)
    product = await inventory_store.get_product(session, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product
