from decimal import Decimal

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from order_service import commands
from order_service.database import create_engine, init_db
from order_service.schemas import ProductCreate


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis():
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def make_product(session_factory):
    """専用のセッションで商品を作成してコミットする。"""

    async def _make(name="Widget", price="10.00", stock=5):
        async with session_factory() as session:
            return await commands.add_product(
                session, ProductCreate(name=name, price=Decimal(price), stock=stock)
            )

    return _make
