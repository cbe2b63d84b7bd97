"""
Order Service — リクエストスキーマ

リクエストは型付きの構造として組み立てた時点で検証が終わる。
PlaceOrderRequest が存在すれば「明細が 1 件以上・ID と数量は Integer 列に収まる正の値」が保証される。
"""

from collections.abc import Iterable
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .database import MAX_INTEGER
from .errors import InvalidRequest


class OrderLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int = Field(ge=1, le=MAX_INTEGER)
    quantity: int = Field(ge=1, le=MAX_INTEGER)


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_items: tuple[OrderLine, ...] = Field(min_length=1)

    @classmethod
    def from_lines(cls, lines: Iterable) -> "PlaceOrderRequest":
        """
        (product_id, quantity) の組の列からリクエストを組み立てる。

        dict や OrderLine も受け付ける。不正な入力は InvalidRequest。
        """
        try:
            items = [
                line
                if isinstance(line, (OrderLine, dict))
                else {"product_id": line[0], "quantity": line[1]}
                for line in lines
            ]
            return cls(order_items=items)
        except (ValidationError, TypeError, IndexError) as e:
            raise InvalidRequest(f"Invalid order request: {e}") from e


class UpdateStatusRequest(BaseModel):
    status: str


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(default=0, ge=0, le=MAX_INTEGER)
