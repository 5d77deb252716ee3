"""
ChaloStore — 外部依存のインターフェースと実装

チェックアウトが使う 4 つの依存:

  ┌──────────────────┐
  │ StockAvailability │  在庫確認・引き当て (products テーブル)
  │ PaymentGateway    │  決済 (HTTP)
  │ NotificationSink  │  注文確認メール (HTTP / ログ)
  │ EventPublisher    │  OrderCreated イベント (Redis Pub/Sub / ログ)
  └──────────────────┘

通知とイベント発行の失敗は DependencyFailure に包んで送出する。
チェックアウト側はこれをログに残すだけで、結果には影響させない。
"""

import json
import logging
from typing import Protocol

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .errors import DependencyFailure
from .events import ORDER_EVENTS_CHANNEL, OrderCreated
from .models import Order, PaymentResult
from .store import ProductRepository

logger = logging.getLogger(__name__)


# ── Protocols ────────────────────────────────────


class StockAvailability(Protocol):
    async def has_stock(self, sku: str, quantity: int) -> bool: ...

    async def reserve(self, sku: str, quantity: int) -> None: ...


class PaymentGateway(Protocol):
    async def charge(self, order: Order) -> PaymentResult: ...


class NotificationSink(Protocol):
    async def send_confirmation(self, email: str, order: Order) -> None: ...


class EventPublisher(Protocol):
    async def publish_order_created(self, order: Order) -> None: ...


# ── 在庫 ─────────────────────────────────────────


class SqlStockAvailability:
    """
    products テーブルの在庫数で判定する。

    reserve は記録のみで DB は変更しない。在庫の減算は決済成功後に
    OrderRepository.place_order が行う。同一商品への同時チェックアウトは
    調停しない（単一ライター前提）。
    """

    def __init__(self, products: ProductRepository):
        self._products = products

    async def has_stock(self, sku: str, quantity: int) -> bool:
        product = await self._products.find_by_sku(sku)
        return product is not None and product.stock >= quantity

    async def reserve(self, sku: str, quantity: int) -> None:
        logger.info("Stock reserved: sku=%s quantity=%d", sku, quantity)


# ── 決済 ─────────────────────────────────────────


class HttpPaymentGateway:
    """
    決済サービスに POST /payments する。

    2xx なら成功。それ以外はレスポンス本文を拒否理由として返す。
    タイムアウトや接続エラーも拒否として扱い、リトライはしない。
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def charge(self, order: Order) -> PaymentResult:
        payload = {
            "productId": order.product_id,
            "customerEmail": order.customer_email,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(f"{self.base_url}/payments", json=payload)
        except httpx.HTTPError as e:
            logger.warning("Payment service unreachable: %s", e)
            return PaymentResult.fail(str(e) or None)

        if resp.is_success:
            return PaymentResult.ok()
        return PaymentResult.fail(resp.text.strip() or None)


class AcceptingPaymentGateway:
    """決済サービス未設定時に使う。常に承認する。"""

    async def charge(self, order: Order) -> PaymentResult:
        return PaymentResult.ok()


# ── 通知 ─────────────────────────────────────────


class HttpNotificationSink:
    """メール送信サービスに POST /emails する。"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send_confirmation(self, email: str, order: Order) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self.base_url}/emails",
                    json={
                        "to": email,
                        "template": "order-confirmation",
                        "orderId": order.id,
                        "productId": order.product_id,
                    },
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise DependencyFailure(f"Confirmation email to {email} failed: {e}") from e


class LoggingNotificationSink:
    async def send_confirmation(self, email: str, order: Order) -> None:
        logger.info("Order confirmation for order %s sent to %s", order.id, email)


# ── イベント ─────────────────────────────────────


class RedisEventPublisher:
    """
    Redis Pub/Sub に OrderCreated を発行する。

    Pub/Sub は fire-and-forget 方式なので、購読者がいなければ失われる。
    """

    def __init__(self, redis: aioredis.Redis, channel: str = ORDER_EVENTS_CHANNEL):
        self.redis = redis
        self.channel = channel

    async def publish_order_created(self, order: Order) -> None:
        message = OrderCreated.from_order(order).to_message()
        try:
            await self.redis.publish(self.channel, json.dumps(message, default=str))
        except RedisError as e:
            raise DependencyFailure(f"Publishing OrderCreated failed: {e}") from e


class LoggingEventPublisher:
    async def publish_order_created(self, order: Order) -> None:
        event = OrderCreated.from_order(order)
        logger.info("OrderCreated: %s", event.model_dump_json())
