"""
ChaloStore — イベント定義

チェックアウトで発生するイベント。
イベントは過去形で命名し、不変(immutable)として扱う。
"""

from datetime import datetime

from pydantic import BaseModel

from .models import Order

ORDER_EVENTS_CHANNEL = "order_events"


class OrderCreated(BaseModel):
    """注文が作成された（在庫引き当てと決済が成功）"""
    order_id: int
    product_id: int
    customer_email: str
    timestamp: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreated":
        return cls(
            order_id=order.id,
            product_id=order.product_id,
            customer_email=order.customer_email,
            timestamp=order.created_at,
        )

    def to_message(self) -> dict:
        """Pub/Sub チャネルに流すメッセージ形式"""
        return {
            "event_type": "OrderCreated",
            "data": self.model_dump(mode="json"),
        }
