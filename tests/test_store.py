"""Tests for the SQL repositories against a temporary SQLite database."""

from datetime import datetime, timezone

import pytest

from chalostore.errors import NotFoundError, ValidationError
from chalostore.gateways import SqlStockAvailability
from chalostore.inventory import InventoryService
from chalostore.models import Order, Product, ProductDto


@pytest.fixture
def laptop():
    return Product(id=1, sku="SKU-001", name="Laptop", stock=5, price=999.5)


class TestProductRepository:

    @pytest.mark.asyncio
    async def test_seed_and_find(self, product_repository, laptop):
        await product_repository.seed(laptop)

        found = await product_repository.find_by_id(1)

        assert found.sku == "SKU-001"
        assert found.name == "Laptop"
        assert found.stock == 5
        assert found.price == 999.5
        assert found.updated_at.tzinfo is not None
        assert (await product_repository.find_by_sku("SKU-001")).id == 1
        assert await product_repository.count() == 1

    @pytest.mark.asyncio
    async def test_missing_product(self, product_repository):
        assert await product_repository.find_by_id(42) is None
        assert await product_repository.find_by_sku("nope") is None
        with pytest.raises(NotFoundError):
            await product_repository.get(42)

    @pytest.mark.asyncio
    async def test_add_assigns_id(self, product_repository, laptop):
        await product_repository.seed(laptop)

        await product_repository.add(ProductDto(id="SKU-002", name="Mouse", quantity=3, price=20))

        products = await product_repository.list_products()
        assert [p.sku for p in products] == ["SKU-001", "SKU-002"]
        assert products[1].id == 2
        assert products[1].stock == 3

    @pytest.mark.asyncio
    async def test_add_duplicate_sku_is_a_validation_error(self, product_repository, laptop):
        await product_repository.seed(laptop)

        with pytest.raises(ValidationError) as excinfo:
            await product_repository.add(
                ProductDto(id="SKU-001", name="Another", quantity=1, price=1)
            )

        assert excinfo.value.errors == ["ID already exists"]
        assert await product_repository.count() == 1
        assert (await product_repository.find_by_sku("SKU-001")).name == "Laptop"

    @pytest.mark.asyncio
    async def test_inventory_service_round_trip(self, product_repository, laptop):
        await product_repository.seed(laptop)
        service = InventoryService(product_repository)

        ok = await service.update_stock("SKU-001", -3)
        rejected = await service.update_stock("SKU-001", -3)

        assert ok.success
        assert rejected.errors == ["Resulting stock cannot be negative"]
        assert (await product_repository.find_by_sku("SKU-001")).stock == 2


class TestOrderRepository:

    @pytest.mark.asyncio
    async def test_place_order_decrements_and_inserts(
        self, product_repository, order_repository, laptop
    ):
        await product_repository.seed(laptop)
        created_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        saved = await order_repository.place_order(
            1, Order(product_id=1, customer_email="a@b.com", created_at=created_at)
        )

        assert saved.id == 1
        assert (await product_repository.find_by_id(1)).stock == 4
        stored = await order_repository.get(saved.id)
        assert stored.customer_email == "a@b.com"
        assert stored.product_id == 1
        assert stored.created_at == created_at

    @pytest.mark.asyncio
    async def test_place_order_for_missing_product_writes_nothing(self, order_repository):
        with pytest.raises(NotFoundError):
            await order_repository.place_order(7, Order(product_id=7, customer_email="a@b.com"))

        assert await order_repository.list_orders() == []

    @pytest.mark.asyncio
    async def test_list_orders_by_product(self, product_repository, order_repository, laptop):
        await product_repository.seed(laptop)
        await product_repository.seed(Product(id=2, sku="SKU-002", name="Mouse", stock=1))

        await order_repository.place_order(1, Order(product_id=1, customer_email="x@y.com"))
        await order_repository.place_order(2, Order(product_id=2, customer_email="z@y.com"))

        assert [o.customer_email for o in await order_repository.list_orders()] == [
            "x@y.com",
            "z@y.com",
        ]
        assert [o.id for o in await order_repository.list_orders(product_id=2)] == [2]

    @pytest.mark.asyncio
    async def test_unknown_order(self, order_repository):
        with pytest.raises(NotFoundError):
            await order_repository.get(1)


class TestSqlStockAvailability:

    @pytest.mark.asyncio
    async def test_has_stock(self, product_repository, laptop):
        await product_repository.seed(laptop)
        stock = SqlStockAvailability(product_repository)

        assert await stock.has_stock("SKU-001", 1)
        assert await stock.has_stock("SKU-001", 5)
        assert not await stock.has_stock("SKU-001", 6)
        assert not await stock.has_stock("SKU-404", 1)

    @pytest.mark.asyncio
    async def test_reserve_does_not_touch_stock(self, product_repository, laptop):
        await product_repository.seed(laptop)
        stock = SqlStockAvailability(product_repository)

        await stock.reserve("SKU-001", 1)

        assert (await product_repository.find_by_sku("SKU-001")).stock == 5
