"""
ChaloStore — リポジトリ (商品・注文)

SQL は text() で直接書く。
チェックアウトの在庫減算と注文登録は place_order で 1 トランザクションにまとめ、
途中の状態が他のリクエストから見えないようにする。
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from .db import as_datetime
from .errors import NotFoundError, ValidationError
from .models import Order, Product, ProductDto

logger = logging.getLogger(__name__)


def _now_param():
    return bindparam("now", type_=DateTime(timezone=True))


def _product_from_row(row) -> Product:
    return Product(
        id=row.id,
        sku=row.sku,
        name=row.name,
        stock=row.stock,
        price=float(row.price),
        updated_at=as_datetime(row.updated_at),
    )


def _order_from_row(row) -> Order:
    return Order(
        id=row.id,
        product_id=row.product_id,
        customer_email=row.customer_email,
        created_at=as_datetime(row.created_at),
    )


class ProductRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ── 読み取り ─────────────────────────────────

    async def find_by_id(self, product_id: int) -> Product | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM products WHERE id = :id"),
                {"id": product_id},
            )
            row = result.fetchone()
            return _product_from_row(row) if row else None

    async def get(self, product_id: int) -> Product:
        product = await self.find_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    async def find_by_sku(self, sku: str) -> Product | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM products WHERE sku = :sku"),
                {"sku": sku},
            )
            row = result.fetchone()
            return _product_from_row(row) if row else None

    async def list_products(self) -> list[Product]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM products ORDER BY id"),
            )
            return [_product_from_row(row) for row in result.fetchall()]

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(text("SELECT COUNT(*) FROM products"))
            return result.scalar_one()

    # ── 在庫管理 (InventoryService から使う) ─────

    async def add(self, product: ProductDto) -> None:
        """
        商品を追加する。

        検証後に別のリクエストが同じ SKU を登録していた場合は
        UNIQUE 制約違反を ValidationError に変換する。
        """
        async with self._session_factory() as session:
            try:
                await session.execute(
                    text("""
                        INSERT INTO products (sku, name, stock, price, updated_at)
                        VALUES (:sku, :name, :stock, :price, :now)
                    """).bindparams(_now_param()),
                    {
                        "sku": product.id,
                        "name": product.name,
                        "stock": product.quantity,
                        "price": product.price,
                        "now": datetime.now(timezone.utc),
                    },
                )
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ValidationError(["ID already exists"]) from e
        logger.info("Product added: sku=%s quantity=%d", product.id, product.quantity)

    async def update_quantity(self, sku: str, new_quantity: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                text("""
                    UPDATE products
                    SET stock = :stock, updated_at = :now
                    WHERE sku = :sku
                """).bindparams(_now_param()),
                {"stock": new_quantity, "now": datetime.now(timezone.utc), "sku": sku},
            )
            await session.commit()
        logger.info("Stock updated: sku=%s stock=%d", sku, new_quantity)

    async def seed(self, product: Product) -> None:
        """ID を指定して商品を登録する（初期データ・テスト用）"""
        async with self._session_factory() as session:
            await session.execute(
                text("""
                    INSERT INTO products (id, sku, name, stock, price, updated_at)
                    VALUES (:id, :sku, :name, :stock, :price, :now)
                """).bindparams(_now_param()),
                {
                    "id": product.id,
                    "sku": product.sku,
                    "name": product.name,
                    "stock": product.stock,
                    "price": product.price,
                    "now": datetime.now(timezone.utc),
                },
            )
            await session.commit()


class OrderRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def place_order(self, product_id: int, order: Order) -> Order:
        """
        在庫を 1 減らし、注文を登録する。

        両方の変更を同じトランザクションでコミットする。
        商品が消えていた場合はどちらも書き込まずに NotFoundError。
        """
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    UPDATE products
                    SET stock = stock - 1, updated_at = :now
                    WHERE id = :id
                """).bindparams(_now_param()),
                {"id": product_id, "now": datetime.now(timezone.utc)},
            )
            if result.rowcount == 0:
                await session.rollback()
                raise NotFoundError(f"Product {product_id} not found")

            result = await session.execute(
                text("""
                    INSERT INTO orders (product_id, customer_email, created_at)
                    VALUES (:product_id, :customer_email, :created_at)
                    RETURNING id
                """).bindparams(bindparam("created_at", type_=DateTime(timezone=True))),
                {
                    "product_id": product_id,
                    "customer_email": order.customer_email,
                    "created_at": order.created_at,
                },
            )
            order_id = result.scalar_one()
            await session.commit()

        return order.model_copy(update={"id": order_id, "product_id": product_id})

    async def find_by_id(self, order_id: int) -> Order | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM orders WHERE id = :id"),
                {"id": order_id},
            )
            row = result.fetchone()
            return _order_from_row(row) if row else None

    async def get(self, order_id: int) -> Order:
        order = await self.find_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def list_orders(self, product_id: int | None = None) -> list[Order]:
        async with self._session_factory() as session:
            if product_id is None:
                result = await session.execute(
                    text("SELECT * FROM orders ORDER BY id"),
                )
            else:
                result = await session.execute(
                    text("SELECT * FROM orders WHERE product_id = :product_id ORDER BY id"),
                    {"product_id": product_id},
                )
            return [_order_from_row(row) for row in result.fetchall()]
