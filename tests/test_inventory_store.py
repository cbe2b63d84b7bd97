from decimal import Decimal

import pytest

from order_service import commands, inventory_store, queries
from order_service.errors import InsufficientStock, ProductNotFound


async def test_decrement_to_zero(session, make_product):
    p = await make_product(stock=4)

    await inventory_store.decrement_stock(session, p.id, 4)

    product = await inventory_store.get_product(session, p.id)
    assert product.stock == 0


async def test_decrement_beyond_stock_leaves_row_untouched(session, make_product):
    p = await make_product(name="Anvil", stock=4)

    with pytest.raises(InsufficientStock) as exc_info:
        await inventory_store.decrement_stock(session, p.id, 5)

    assert exc_info.value.product_name == "Anvil"
    product = await inventory_store.get_product(session, p.id)
    assert product.stock == 4


async def test_decrement_missing_product(session):
    with pytest.raises(ProductNotFound):
        await inventory_store.decrement_stock(session, 77, 1)


async def test_get_products_skips_unknown_ids(session, make_product):
    a = await make_product(name="A")
    b = await make_product(name="B", price="3.25")

    found = await inventory_store.get_products(session, [a.id, b.id, 999])

    assert set(found) == {a.id, b.id}
    assert found[b.id].price == Decimal("3.25")
    assert await inventory_store.get_products(session, []) == {}


async def test_list_and_delete_products(session, make_product):
    a = await make_product(name="A")
    b = await make_product(name="B")

    assert [p.name for p in await inventory_store.list_products(session)] == ["A", "B"]
    assert await inventory_store.delete_product(session, a.id) is True
    assert await inventory_store.delete_product(session, a.id) is False
    assert [p.id for p in await inventory_store.list_products(session)] == [b.id]


async def test_out_of_range_product_id_is_not_found(session):
    with pytest.raises(ProductNotFound):
        await queries.get_product(session, 2**70)
    with pytest.raises(ProductNotFound):
        await commands.remove_product(session, 2**70)
