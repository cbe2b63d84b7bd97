"""
Order Service — エラー定義

コマンド/クエリは結果を返すか、以下のいずれかを送出する。
HTTP ステータスへの変換は main.py が行う。
"""


class OrderServiceError(Exception):
    """注文サービスの業務エラーの基底クラス"""


class InvalidRequest(OrderServiceError):
    """入力不正（空の明細、0 以下の数量、未知のステータスなど）"""


class InvalidStatus(InvalidRequest):
    def __init__(self, status: object) -> None:
        self.status = status
        super().__init__(f"Invalid order status: {status!r}")


class InvalidTransition(InvalidRequest):
    """厳格モードで許可されていない状態遷移"""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current} to {requested}")


class ProductNotFound(OrderServiceError):
    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class OrderNotFound(OrderServiceError):
    def __init__(self, key: int | str) -> None:
        self.key = key
        super().__init__(f"Order not found: {key}")


class InsufficientStock(OrderServiceError):
    """在庫不足。メッセージには商品名をそのまま含める。"""

    def __init__(self, product_name: str) -> None:
        self.product_name = product_name
        super().__init__(f"Insufficient stock for product: {product_name}")


class PersistenceFailure(OrderServiceError):
    """ストアがコミットできなかった。副作用はすべてロールバック済み。"""
