"""Catalog repository interfaces.

The order module depends on ``IProductRepository`` to snapshot prices at
checkout and to move stock after payment; the admin surface depends on
both interfaces for CRUD.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Category, Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        """Return alive products keyed by ``str(id)``; missing ids are absent."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Used for stock moves.  Returns ``None`` if the product does not
        exist.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of alive products."""

    @abstractmethod
    def low_stock(self, threshold: int, limit: int = 10) -> List[Product]:
        """Active, in-stock products with fewer than ``threshold`` units."""


class ICategoryRepository(IRepository["Category"]):
    """Repository contract for categories."""

    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive name look-up."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Category]:
        """List categories with optional filters."""
