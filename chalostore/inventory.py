"""
ChaloStore — 在庫管理サービス

商品登録と在庫数の増減を業務ルールで検証する。
違反はフィールドごとに打ち切らず、すべて集めてから ServiceResult で返す。
リポジトリへの書き込みは検証がすべて通った場合だけ行う。
"""

from typing import Protocol

from .models import Product, ProductDto, ServiceResult

# products.sku 列の長さと揃える
MAX_ID_LENGTH = 64
MAX_NAME_LENGTH = 100
FORBIDDEN_NAME_CHARACTERS = "!@#$%"


class InventoryRepository(Protocol):
    async def find_by_sku(self, sku: str) -> Product | None: ...

    async def add(self, product: ProductDto) -> None: ...

    async def update_quantity(self, sku: str, new_quantity: int) -> None: ...


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class InventoryService:
    def __init__(self, repository: InventoryRepository):
        self._repository = repository

    async def add_product(self, product: ProductDto) -> ServiceResult:
        """
        商品登録コマンド

        ID・名前の必須チェック、ID の長さと重複、名前の長さと禁止文字、
        数量と価格の非負を検証する。
        """
        errors: list[str] = []
        if _blank(product.id):
            errors.append("ID is required")
        elif len(product.id) > MAX_ID_LENGTH:
            errors.append(f"ID exceeds {MAX_ID_LENGTH} characters")
        elif await self._repository.find_by_sku(product.id) is not None:
            errors.append("ID already exists")
        if _blank(product.name):
            errors.append("Name is required")
        if len(product.name) > MAX_NAME_LENGTH:
            errors.append(f"Name exceeds {MAX_NAME_LENGTH} characters")
        if any(c in FORBIDDEN_NAME_CHARACTERS for c in product.name):
            errors.append("Name contains invalid characters")
        if product.quantity < 0:
            errors.append("Quantity cannot be negative")
        if product.price < 0:
            errors.append("Price cannot be negative")

        if errors:
            return ServiceResult.fail(*errors)

        await self._repository.add(product)
        return ServiceResult.ok()

    async def update_stock(self, product_id: str, delta: int) -> ServiceResult:
        """
        在庫増減コマンド

        商品の検索は ID が空でも行う（見つからなければ "Product not found" も積む）。
        """
        errors: list[str] = []
        if _blank(product_id):
            errors.append("ID is required")
        if delta == 0:
            errors.append("Delta cannot be zero")

        product = await self._repository.find_by_sku(product_id)
        if product is None:
            errors.append("Product not found")
        elif product.stock + delta < 0:
            errors.append("Resulting stock cannot be negative")

        if errors:
            return ServiceResult.fail(*errors)

        await self._repository.update_quantity(product_id, product.stock + delta)
        return ServiceResult.ok()
