"""
Order Service — イベント定義

コミット後に Redis Pub/Sub で他サービスへ通知するイベント。
イベントは過去形で命名し、不変(immutable)として扱う。
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class OrderPlacedItem(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal


class OrderPlaced(BaseModel):
    """注文が作成され、在庫が減算された"""
    order_id: int
    transaction_id: str
    items: list[OrderPlacedItem]
    total_amount: Decimal
    timestamp: datetime


class OrderStatusChanged(BaseModel):
    """注文ステータスが変更された"""
    order_id: int
    transaction_id: str
    previous_status: str
    status: str
    timestamp: datetime
