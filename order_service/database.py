"""
Order Service — データベース

テーブル定義と非同期エンジンの生成を行う。
商品(products)・注文(orders)・注文明細(order_items)の 3 テーブル。

order_items.product_id には外部キーを張らない。
明細は注文時点のスナップショットであり、商品が後から削除・変更されても残る。
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    TypeDecorator,
    event,
)
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from . import config

# Integer 列 (PostgreSQL int4) に入る最大値
MAX_INTEGER = 2**31 - 1

# orders.total_amount (14 桁, 小数 2 桁) に入る最大値
MAX_ORDER_TOTAL = Decimal("999999999999.99")


class Money(TypeDecorator):
    """
    金額 (Decimal)。

    PostgreSQL では NUMERIC のまま保存する。SQLite の NUMERIC は浮動小数点に
    なり桁数の多い金額が丸められるので、Decimal の文字列として保存する。
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int, scale: int = 2) -> None:
        super().__init__(precision, scale)
        self.precision = precision
        self.scale = scale

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision + 2))
        return dialect.type_descriptor(Numeric(self.precision, self.scale))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value).quantize(Decimal(1).scaleb(-self.scale))
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("price", Money(12), nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_id", String(36), nullable=False, unique=True),
    Column("total_amount", Money(14), nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "order_id",
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("product_id", Integer, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Money(12), nullable=False),
    CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
)


def create_engine(url: str = config.DATABASE_URL, **kwargs) -> AsyncEngine:
    """
    非同期エンジンを生成する。

    SQLite の場合は書き込みトランザクションを直列化する設定を入れる
    (PostgreSQL は行ロックで直列化されるので不要)。
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"timeout": config.SQLITE_BUSY_TIMEOUT})
    engine = create_async_engine(url, echo=False, **kwargs)
    if engine.dialect.name == "sqlite":
        _serialize_sqlite_writers(engine)
    return engine


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """
    pysqlite の暗黙トランザクションを無効にし、BEGIN IMMEDIATE で開始する。

    後から来たトランザクションは busy timeout の間ロック解放を待つので、
    在庫チェックと減算が他の注文と交互に実行されることはない。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def init_db(engine: AsyncEngine) -> None:
    """テーブルが無ければ作成する。"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
