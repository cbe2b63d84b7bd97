import asyncio

from order_service import commands, queries
from order_service.errors import InsufficientStock


async def attempt(session_factory, lines):
    async with session_factory() as session:
        try:
            return await commands.place_order(session, None, lines)
        except InsufficientStock as e:
            return e


async def current_stock(session_factory, product_id):
    async with session_factory() as session:
        product = await queries.get_product(session, product_id)
        return product.stock


async def test_two_racing_orders_only_one_wins(session_factory, make_product):
    p1 = await make_product(name="Limited Print", stock=5)

    results = await asyncio.gather(
        attempt(session_factory, [(p1.id, 3)]),
        attempt(session_factory, [(p1.id, 3)]),
    )

    failures = [r for r in results if isinstance(r, InsufficientStock)]
    successes = [r for r in results if not isinstance(r, InsufficientStock)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert failures[0].product_name == "Limited Print"
    assert await current_stock(session_factory, p1.id) == 2

    async with session_factory() as session:
        orders = await queries.list_orders(session)
    assert [o.transaction_id for o in orders] == [successes[0].transaction_id]


async def test_stock_is_conserved_under_many_concurrent_orders(
    session_factory, make_product
):
    initial = 12
    p = await make_product(name="Concert Ticket", stock=initial)
    quantities = [1, 2, 3, 1, 2, 3, 1, 2, 3, 1, 2, 3]

    results = await asyncio.gather(
        *(attempt(session_factory, [(p.id, q)]) for q in quantities)
    )

    sold = sum(
        q for q, r in zip(quantities, results) if not isinstance(r, InsufficientStock)
    )
    assert 0 < sold <= initial
    assert await current_stock(session_factory, p.id) == initial - sold

    async with session_factory() as session:
        orders = await queries.list_orders(session)
    assert sum(item.quantity for o in orders for item in o.items) == sold


async def test_multi_product_orders_in_opposite_line_order(session_factory, make_product):
    a = await make_product(name="Left Boot", stock=6)
    b = await make_product(name="Right Boot", stock=6)

    results = await asyncio.gather(
        *(
            attempt(session_factory, lines)
            for lines in [[(a.id, 1), (b.id, 1)], [(b.id, 1), (a.id, 1)]] * 3
        )
    )

    assert not any(isinstance(r, InsufficientStock) for r in results)
    assert await current_stock(session_factory, a.id) == 0
    assert await current_stock(session_factory, b.id) == 0
