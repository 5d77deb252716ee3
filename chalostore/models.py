"""
ChaloStore — ドメインモデル

API の JSON は camelCase (productId, customerEmail) で入出力する。
Python 側ではスネークケースの属性名で扱う。
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PENDING_PAYMENT = "Pending Payment"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── カタログ ─────────────────────────────────────


class Product(StoreModel):
    """カタログ上の商品。stock は 0 未満にならない。"""
    id: int
    sku: str
    name: str
    stock: int = 0
    price: float = 0
    updated_at: datetime | None = None


class ProductDto(StoreModel):
    """在庫管理の入力。id には SKU が入る。"""
    id: str
    name: str
    quantity: int
    price: float


# ── 注文 ─────────────────────────────────────────


class Order(StoreModel):
    """注文 — チェックアウト成功時に 1 度だけ作成され、以後変更されない。"""
    id: int | None = None
    product_id: int
    customer_email: str
    created_at: datetime = Field(default_factory=_utcnow)


# ── 結果 ─────────────────────────────────────────


class ServiceResult(BaseModel):
    success: bool
    errors: list[str] = []

    @classmethod
    def ok(cls) -> "ServiceResult":
        return cls(success=True)

    @classmethod
    def fail(cls, *errors: str) -> "ServiceResult":
        return cls(success=False, errors=list(errors))


class PaymentResult(BaseModel):
    success: bool
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "PaymentResult":
        return cls(success=True)

    @classmethod
    def fail(cls, message: str | None = None) -> "PaymentResult":
        return cls(success=False, error_message=message)


class RejectionReason(str, Enum):
    OUT_OF_STOCK = "out-of-stock"
    PAYMENT_DECLINED = "payment-declined"


class CheckoutConfirmed(BaseModel):
    """注文を受け付けた。決済はオーソリのみで、確定 (settlement) は範囲外。"""
    outcome: Literal["confirmed"] = "confirmed"
    order: Order
    status: str = PENDING_PAYMENT
    checkout_log: list[dict] = []


class CheckoutRejected(BaseModel):
    """業務上の拒否（在庫切れ・決済拒否）。例外ではなく通常の結果として返す。"""
    outcome: Literal["rejected"] = "rejected"
    reason: RejectionReason
    message: str
    checkout_log: list[dict] = []


CheckoutOutcome = CheckoutConfirmed | CheckoutRejected
