"""Catalog service layer (Use Cases).

Admin-facing CRUD for products and categories, hot deals, and the stock
moves triggered by paid or cancelled orders.  Stock moves lock each product
row (``SELECT FOR UPDATE``) and are processed in product-id order to avoid
deadlocks between concurrent outbox workers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

import structlog
from django.db import transaction

from modules.catalog.exceptions import (
    CategoryAlreadyExists,
    CategoryNotFound,
    ProductNotFound,
)
from modules.catalog.models import Category, Product, ProductStatus

if TYPE_CHECKING:
    from modules.catalog.dtos import (
        CreateCategoryDTO,
        CreateProductDTO,
        HotDealDTO,
        UpdateCategoryDTO,
        UpdateProductDTO,
    )
    from modules.catalog.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
    )

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases."""

    def __init__(
        self,
        repository: IProductRepository,
        category_repository: ICategoryRepository,
    ) -> None:
        self._repo = repository
        self._category_repo = category_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a product.

        Raises:
            CategoryNotFound: ``category_id`` does not exist.
        """
        product = Product(
            name=dto.name,
            description=dto.description,
            price=dto.price,
            currency=dto.currency,
            category=self._resolve_category(dto.category_id),
            images=list(dto.images),
            stock_quantity=dto.stock_quantity,
            featured=dto.featured,
        )
        product = self._repo.save(product)
        logger.info("product.created", product_id=str(product.id), name=product.name)
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Apply the non-``None`` fields of ``dto``.

        Raises:
            ProductNotFound: the product does not exist.
            CategoryNotFound: ``category_id`` does not exist.
        """
        product = self.get_product(id)

        for field in (
            "name",
            "description",
            "price",
            "currency",
            "images",
            "stock_quantity",
            "featured",
            "status",
        ):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
        if dto.category_id is not None:
            product.category = self._resolve_category(dto.category_id)
        if dto.price is not None and product.hot_deal:
            # A manual price change supersedes any running deal.
            product.hot_deal = False
            product.deal_percentage = None
            product.hot_deal_end = None
            product.deal_original_price = None

        product = self._repo.save(product)
        logger.info("product.updated", product_id=str(id))
        return product

    @transaction.atomic
    def update_stock(self, id: str, stock_quantity: int) -> Product:
        product = self._repo.get_for_update(id)
        if not product or product.is_deleted:
            raise ProductNotFound(f"Product {id} not found.")
        product.stock_quantity = stock_quantity
        product.save(update_fields=["stock_quantity"])
        logger.info("product.stock_set", product_id=str(id), stock=stock_quantity)
        return product

    @transaction.atomic
    def set_hot_deal(self, id: str, dto: HotDealDTO) -> Product:
        product = self.get_product(id)
        product.apply_hot_deal(dto.deal_percentage, dto.hot_deal_end)
        product = self._repo.save(product)
        logger.info(
            "product.hot_deal_set",
            product_id=str(id),
            percentage=str(dto.deal_percentage),
            price=str(product.price),
        )
        return product

    @transaction.atomic
    def remove_hot_deal(self, id: str) -> Product:
        product = self.get_product(id)
        product.clear_hot_deal()
        product = self._repo.save(product)
        logger.info("product.hot_deal_removed", product_id=str(id))
        return product

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        if not self._repo.delete(id):
            raise ProductNotFound(f"Product {id} not found.")

    # ------------------------------------------------------------------
    # Stock moves (driven by order events)
    # ------------------------------------------------------------------

    @transaction.atomic
    def remove_stock(self, lines: Iterable[Tuple[str, int]]) -> Dict[str, int]:
        """Decrement stock for ``(product_id, quantity)`` lines.

        Missing or deleted products are skipped with a warning: the order
        snapshot stays valid even if the catalog entry is gone.  Returns the
        shortfall per product id (units that could not be removed).
        """
        shortfalls: Dict[str, int] = {}
        for product_id, quantity in sorted(lines):
            product = self._repo.get_for_update(product_id)
            if not product:
                logger.warning("product.stock_move_skipped", product_id=product_id)
                continue
            shortfall = product.decrement_stock(quantity)
            product.save(update_fields=["stock_quantity"])
            if shortfall:
                shortfalls[product_id] = shortfall
            logger.info(
                "product.stock_removed",
                product_id=product_id,
                quantity=quantity,
                remaining=product.stock_quantity,
            )
        return shortfalls

    @transaction.atomic
    def restore_stock(self, lines: Iterable[Tuple[str, int]]) -> None:
        for product_id, quantity in sorted(lines):
            product = self._repo.get_for_update(product_id)
            if not product:
                logger.warning("product.stock_move_skipped", product_id=product_id)
                continue
            product.increment_stock(quantity)
            product.save(update_fields=["stock_quantity"])
            logger.info(
                "product.stock_restored",
                product_id=product_id,
                quantity=quantity,
                restored_stock=product.stock_quantity,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None):
        return self._repo.list(filters)

    def list_public_products(self):
        return self._repo.list({"status": ProductStatus.ACTIVE})

    def get_product(self, id: str) -> Product:
        """Raises ``ProductNotFound`` for missing or soft-deleted products."""
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def get_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        return self._repo.get_many(ids)

    def count_products(self) -> int:
        return self._repo.count()

    def low_stock(self, threshold: int, limit: int = 10) -> List[Product]:
        return self._repo.low_stock(threshold, limit)

    def _resolve_category(self, category_id) -> Optional[Category]:
        if category_id is None:
            return None
        category = self._category_repo.get_by_id(str(category_id))
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")
        return category


class CategoryService:
    """Application service for Category use-cases."""

    def __init__(self, repository: ICategoryRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        """Raises ``CategoryAlreadyExists`` on a case-insensitive name clash."""
        if self._repo.get_by_name(dto.name):
            logger.warning("category.duplicate_name", name=dto.name)
            raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.")
        category = Category(
            name=dto.name,
            description=dto.description,
            is_active=dto.is_active,
            sort_order=dto.sort_order,
            image_url=dto.image_url,
        )
        return self._repo.save(category)

    @transaction.atomic
    def update_category(self, id: str, dto: UpdateCategoryDTO) -> Category:
        category = self.get_category(id)
        if dto.name is not None:
            clash = self._repo.get_by_name(dto.name)
            if clash and clash.id != category.id:
                raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.")
        for field in ("name", "description", "is_active", "sort_order", "image_url"):
            value = getattr(dto, field)
            if value is not None:
                setattr(category, field, value)
        return self._repo.save(category)

    @transaction.atomic
    def delete_category(self, id: str) -> None:
        if not self._repo.delete(id):
            raise CategoryNotFound(f"Category {id} not found.")

    def get_category(self, id: str) -> Category:
        category = self._repo.get_by_id(id)
        if not category:
            raise CategoryNotFound(f"Category {id} not found.")
        return category

    def list_categories(self, active_only: bool = False) -> List[Category]:
        return self._repo.list({"is_active": True} if active_only else None)
