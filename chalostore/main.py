"""
ChaloStore — FastAPI エントリーポイント

チェックアウト (POST /orders)、在庫管理 (POST /products, POST /products/{sku}/stock)、
参照系 (GET) のエンドポイントを提供する。

依存サービスは create_app で明示的に組み立てる。テストでは決済・通知・
イベント発行の実装を引数で差し替える。
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from .checkout import CheckoutOrchestrator
from .config import Settings, configure_logging
from .db import create_engine, create_session_factory, init_db
from .errors import NotFoundError, ValidationError
from .gateways import (
    AcceptingPaymentGateway,
    EventPublisher,
    HttpNotificationSink,
    HttpPaymentGateway,
    LoggingEventPublisher,
    LoggingNotificationSink,
    NotificationSink,
    PaymentGateway,
    RedisEventPublisher,
    SqlStockAvailability,
)
from .inventory import InventoryService
from .models import CheckoutRejected, Order, Product, ProductDto, RejectionReason
from .page import CHECKOUT_PAGE
from .store import OrderRepository, ProductRepository

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT = Product(id=1, sku="SKU-001", name="Laptop", stock=100)


# ── Request Models ───────────────────────────────


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    customer_email: str = Field(alias="customerEmail")


class StockDeltaRequest(BaseModel):
    delta: int


router = APIRouter()


# ── Checkout ─────────────────────────────────────


@router.post("/orders")
async def place_order(req: PlaceOrderRequest, request: Request):
    """
    注文を作成する（チェックアウト）

    在庫切れ・商品なし → 400、決済拒否 → 503。どちらも本文はプレーンテキスト。
    """
    state = request.app.state
    product = await state.products.find_by_id(req.product_id)
    order = Order(product_id=req.product_id, customer_email=req.customer_email)

    outcome = await state.checkout.process(order, product)
    if isinstance(outcome, CheckoutRejected):
        status_code = 400 if outcome.reason is RejectionReason.OUT_OF_STOCK else 503
        return PlainTextResponse(outcome.message, status_code=status_code)
    return outcome.order.model_dump(mode="json", by_alias=True)


@router.get("/checkout", response_class=HTMLResponse)
async def checkout_page():
    return CHECKOUT_PAGE


# ── Orders (Read 側) ─────────────────────────────


@router.get("/orders")
async def list_orders(request: Request, product_id: int | None = Query(None, alias="productId")):
    orders = await request.app.state.orders.list_orders(product_id)
    return [o.model_dump(mode="json", by_alias=True) for o in orders]


@router.get("/orders/{order_id}")
async def get_order(order_id: int, request: Request):
    order = await request.app.state.orders.get(order_id)
    return order.model_dump(mode="json", by_alias=True)


# ── Products ─────────────────────────────────────


@router.get("/products")
async def list_products(request: Request):
    products = await request.app.state.products.list_products()
    return [p.model_dump(mode="json", by_alias=True) for p in products]


@router.get("/products/{product_id}")
async def get_product(product_id: int, request: Request):
    product = await request.app.state.products.get(product_id)
    return product.model_dump(mode="json", by_alias=True)


@router.post("/products", status_code=201)
async def add_product(req: ProductDto, request: Request):
    """商品登録コマンド（検証エラーはまとめて 400 で返す）"""
    state = request.app.state
    result = await state.inventory.add_product(req)
    if not result.success:
        raise ValidationError(result.errors)
    product = await state.products.find_by_sku(req.id)
    return product.model_dump(mode="json", by_alias=True)


@router.post("/products/{sku}/stock")
async def update_stock(sku: str, req: StockDeltaRequest, request: Request):
    """在庫増減コマンド"""
    state = request.app.state
    result = await state.inventory.update_stock(sku, req.delta)
    if not result.success:
        raise ValidationError(result.errors)
    product = await state.products.find_by_sku(sku)
    return product.model_dump(mode="json", by_alias=True)


@router.get("/health")
async def health():
    return {"status": "ok", "service": "chalostore"}


# ── Error Handlers ───────────────────────────────


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse({"errors": exc.errors}, status_code=400)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=404)


# ── App Factory ──────────────────────────────────


def _payment_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_service_url:
        return HttpPaymentGateway(settings.payment_service_url, settings.http_timeout)
    return AcceptingPaymentGateway()


def _notification_sink(settings: Settings) -> NotificationSink:
    if settings.notification_service_url:
        return HttpNotificationSink(settings.notification_service_url, settings.http_timeout)
    return LoggingNotificationSink()


def create_app(
    settings: Settings | None = None,
    *,
    payment_gateway: PaymentGateway | None = None,
    notification_sink: NotificationSink | None = None,
    event_publisher: EventPublisher | None = None,
) -> FastAPI:
    """
    アプリケーションを組み立てる。

    settings を省略した場合、環境変数の読み込みとログ設定は起動時 (lifespan) に行う。
    モジュールの import だけでは環境変数を読まない。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = settings or Settings.from_env()
        configure_logging(config.log_level)

        engine = create_engine(config.database_url)
        await init_db(engine)
        async_session = create_session_factory(engine)

        products = ProductRepository(async_session)
        orders = OrderRepository(async_session)
        if config.seed_catalog and await products.count() == 0:
            await products.seed(DEFAULT_PRODUCT)
            logger.info("Seeded catalog with %s", DEFAULT_PRODUCT.sku)

        redis_pool: aioredis.Redis | None = None
        publisher = event_publisher
        if publisher is None:
            if config.redis_url:
                redis_pool = aioredis.from_url(config.redis_url, decode_responses=True)
                publisher = RedisEventPublisher(redis_pool)
            else:
                publisher = LoggingEventPublisher()

        app.state.products = products
        app.state.orders = orders
        app.state.inventory = InventoryService(products)
        app.state.checkout = CheckoutOrchestrator(
            SqlStockAvailability(products),
            payment_gateway or _payment_gateway(config),
            notification_sink or _notification_sink(config),
            publisher,
            orders,
        )
        yield
        if redis_pool is not None:
            await redis_pool.aclose()
        await engine.dispose()

    app = FastAPI(title="ChaloStore", lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    return app


app = create_app()
