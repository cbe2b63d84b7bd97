"""
Order Service — FastAPI エントリーポイント

HTTP は薄い層にとどめ、処理は commands（書き込み）と queries（読み取り）に委譲する。
業務エラーは例外ハンドラで HTTP ステータスに変換する。

  POST   /orders                              注文作成
  PUT    /orders/{order_id}/status            ステータス変更
  GET    /orders                              注文一覧
  GET    /orders/transaction/{transaction_id} transaction_id で注文取得
  GET    /products, POST /products, GET/DELETE /products/{product_id}
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from . import commands, config, queries
from .database import create_engine, init_db
from .errors import (
    InsufficientStock,
    InvalidRequest,
    OrderNotFound,
    OrderServiceError,
    PersistenceFailure,
    ProductNotFound,
)
from .schemas import PlaceOrderRequest, ProductCreate, UpdateStatusRequest

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

engine = create_engine(config.DATABASE_URL)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
redis_pool: aioredis.Redis | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool
    await init_db(engine)
    redis_pool = aioredis.from_url(config.REDIS_URL, decode_responses=True)
    yield
    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(title="Order Service", lifespan=lifespan)


# ── エラー → HTTP ステータス ─────────────────────

_STATUS_CODES: dict[type[OrderServiceError], int] = {
    InvalidRequest: 400,
    ProductNotFound: 404,
    OrderNotFound: 404,
    InsufficientStock: 409,
    PersistenceFailure: 503,
}


@app.exception_handler(OrderServiceError)
async def handle_service_error(request: Request, exc: OrderServiceError):
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


# ── Command Endpoints (Write 側) ─────────────────


@app.post("/orders", status_code=201)
async def cmd_place_order(req: PlaceOrderRequest):
    """注文作成コマンド"""
    async with async_session() as session:
        return await commands.place_order(session, redis_pool, req)


@app.put("/orders/{order_id}/status")
async def cmd_update_status(order_id: int, req: UpdateStatusRequest):
    """注文ステータス変更コマンド"""
    async with async_session() as session:
        order = await commands.transition_order_status(
            session,
            redis_pool,
            order_id,
            req.status,
            strict=config.STRICT_STATUS_TRANSITIONS,
        )
        return {
            "message": "Order status updated successfully",
            "order_id": order.id,
            "status": order.status,
        }


@app.post("/products", status_code=201)
async def cmd_add_product(req: ProductCreate):
    """商品登録コマンド"""
    async with async_session() as session:
        return await commands.add_product(session, req)


@app.delete("/products/{product_id}")
async def cmd_delete_product(product_id: int):
    """商品削除コマンド"""
    async with async_session() as session:
        await commands.remove_product(session, product_id)
        return {"message": "Product deleted successfully"}


# ── Query Endpoints (Read 側) ────────────────────


@app.get("/orders")
async def query_list_orders():
    async with async_session() as session:
        return await queries.list_orders(session)


@app.get("/orders/transaction/{transaction_id}")
async def query_get_order(transaction_id: str):
    async with async_session() as session:
        return await queries.get_order_by_transaction_id(session, transaction_id)


@app.get("/products")
async def query_list_products():
    async with async_session() as session:
        return await queries.list_products(session)


@app.get("/products/{product_id}")
async def query_get_product(product_id: int):
    async with async_session() as session:
        return await queries.get_product(session, product_id)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "order-service"}
