"""
ChaloStore — チェックアウト・オーケストレーター

1 件の注文について、依存サービスを決められた順序で呼び出す。

  フロー:
  ┌─────────────────────────────────────────────────────────┐
  │  0. 商品が存在し在庫が 1 以上あるか確認                   │
  │  1. 在庫確認 (has_stock)                                  │
  │  2. 在庫の引き当て (reserve)                              │
  │  3. 決済 (charge)                                         │
  │     └─ 拒否 → ここで終了。在庫も注文も変更しない          │
  │  4. 在庫を 1 減らして注文を登録 (1 トランザクション)      │
  │  5. 注文確認メール送信 (失敗してもログのみ)               │
  │  6. OrderCreated イベント発行 (失敗してもログのみ)        │
  │  7. "Pending Payment" で確定を返す                        │
  └─────────────────────────────────────────────────────────┘

在庫切れと決済拒否は CheckoutRejected として返す（例外にしない）。
ステップ 4 以降は呼び出し側のキャンセルから保護する。コミット済みの注文は取り消さない。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from .gateways import EventPublisher, NotificationSink, PaymentGateway, StockAvailability
from .models import (
    CheckoutConfirmed,
    CheckoutOutcome,
    CheckoutRejected,
    Order,
    Product,
    RejectionReason,
)

logger = logging.getLogger(__name__)

PRODUCT_NOT_AVAILABLE = "Product not available"
NO_STOCK_AVAILABLE = "No stock available"
PAYMENT_REJECTED = "Payment rejected"

# 1 注文あたりの数量は常に 1
UNITS_PER_ORDER = 1


class CheckoutStore(Protocol):
    async def place_order(self, product_id: int, order: Order) -> Order: ...


class CheckoutOrchestrator:
    """チェックアウトのオーケストレーター"""

    def __init__(
        self,
        stock: StockAvailability,
        payments: PaymentGateway,
        notifier: NotificationSink,
        events: EventPublisher,
        orders: CheckoutStore,
    ):
        self.stock = stock
        self.payments = payments
        self.notifier = notifier
        self.events = events
        self.orders = orders
        self._committing: set[asyncio.Task] = set()

    async def process(self, order: Order, product: Product | None) -> CheckoutOutcome:
        """
        チェックアウトを実行する。

        決済を呼ぶ前に在庫を確認するので、在庫のない商品に課金することはない。
        """
        checkout_log: list[dict] = []

        # ── Step 0: 商品を確認 ──────────────────────
        step = _begin(checkout_log, "VerifyProduct")
        if product is None or product.stock <= 0:
            _fail(step, PRODUCT_NOT_AVAILABLE)
            return _reject(RejectionReason.OUT_OF_STOCK, PRODUCT_NOT_AVAILABLE, checkout_log)
        _complete(step)

        # ── Step 1: 在庫を確認 ──────────────────────
        step = _begin(checkout_log, "CheckStock")
        if not await self.stock.has_stock(product.sku, UNITS_PER_ORDER):
            _fail(step, NO_STOCK_AVAILABLE)
            return _reject(RejectionReason.OUT_OF_STOCK, NO_STOCK_AVAILABLE, checkout_log)
        _complete(step)

        # ── Step 2: 在庫を引き当て ──────────────────
        step = _begin(checkout_log, "ReserveStock")
        await self.stock.reserve(product.sku, UNITS_PER_ORDER)
        _complete(step)

        # ── Step 3: 決済 ────────────────────────────
        step = _begin(checkout_log, "ChargePayment")
        try:
            payment = await self.payments.charge(order)
        except Exception as e:
            logger.exception("Payment gateway failed for product %s", product.id)
            payment_error = str(e) or PAYMENT_REJECTED
        else:
            payment_error = None if payment.success else (payment.error_message or PAYMENT_REJECTED)

        if payment_error is not None:
            _fail(step, payment_error)
            return _reject(RejectionReason.PAYMENT_DECLINED, payment_error, checkout_log)
        _complete(step)

        # ── Step 4 以降: キャンセルされても最後まで実行する ──
        task = asyncio.create_task(self._commit(order, product, checkout_log))
        self._committing.add(task)
        task.add_done_callback(self._committing.discard)
        return await asyncio.shield(task)

    async def _commit(
        self,
        order: Order,
        product: Product,
        checkout_log: list[dict],
    ) -> CheckoutConfirmed:
        # ── Step 4: 在庫減算 + 注文登録 ─────────────
        step = _begin(checkout_log, "PlaceOrder")
        try:
            saved = await self.orders.place_order(product.id, order)
        except Exception as e:
            _fail(step, str(e))
            raise
        _complete(step)

        # ── Step 5: 注文確認メール ──────────────────
        step = _begin(checkout_log, "SendConfirmation")
        try:
            await self.notifier.send_confirmation(saved.customer_email, saved)
            _complete(step)
        except Exception as e:
            logger.exception("Confirmation email for order %s failed", saved.id)
            _fail(step, str(e))

        # ── Step 6: OrderCreated を発行 ─────────────
        step = _begin(checkout_log, "PublishOrderCreated")
        try:
            await self.events.publish_order_created(saved)
            _complete(step)
        except Exception as e:
            logger.exception("Publishing OrderCreated for order %s failed", saved.id)
            _fail(step, str(e))

        logger.info("Checkout confirmed: order=%s product=%s", saved.id, product.id)
        return CheckoutConfirmed(order=saved, checkout_log=checkout_log)


def _begin(checkout_log: list[dict], action: str) -> dict:
    step = {
        "step": len(checkout_log),
        "action": action,
        "status": "EXECUTING",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    checkout_log.append(step)
    return step


def _complete(step: dict) -> None:
    step["status"] = "COMPLETED"


def _fail(step: dict, error: str) -> None:
    step["status"] = "FAILED"
    step["error"] = error


def _reject(
    reason: RejectionReason,
    message: str,
    checkout_log: list[dict],
) -> CheckoutRejected:
    logger.info("Checkout rejected (%s): %s", reason.value, message)
    return CheckoutRejected(reason=reason, message=message, checkout_log=checkout_log)
