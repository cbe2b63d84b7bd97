"""
Order Service — ドメインモデル

Order と OrderItem は作成後に変更しない（frozen）。
合計金額と明細の単価は注文時点の記録であり、現在の商品価格とは連動しない。
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .status import OrderStatus


class Product(BaseModel):
    id: int
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderItem(BaseModel):
    """注文明細。product_id は参照のみ（商品の所有はしない）。"""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    product_id: int
    quantity: int = Field(ge=1)
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    transaction_id: str
    items: tuple[OrderItem, ...] = ()
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime
