"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs: atomic
creation with items, row locks for state changes, status history, and
look-ups by public id and idempotency key.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes ``OrderItem`` children and
    ``OrderStatusHistory`` records.  Mutations must be atomic, and
    ``save`` must write pending domain events to the outbox in the same
    transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items.

        ``data`` holds the order's snapshot fields plus ``items``: a list of
        dicts with ``product_id``, ``name``, ``image``, ``unit_price``,
        ``currency`` and ``quantity``.
        """

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Optional[Order]:
        """Look up by the public ``ORD-…`` identifier."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Row-locked fetch by primary key."""

    @abstractmethod
    def get_for_update_by_order_id(self, order_id: str) -> Optional[Order]:
        """Row-locked fetch by public identifier."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        pass

    @abstractmethod
    def add_history(
        self,
        order: Order,
        field: str,
        new_value: str,
        old_value: Optional[str] = None,
        notes: str = "",
        user: Any = None,
    ) -> OrderStatusHistory:
        """Append one audit record."""

    @abstractmethod
    def count_by_status(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def revenue_by_currency(self) -> Dict[str, Decimal]:
        """Sum of ``total`` over paid orders, per currency."""

    @abstractmethod
    def recent(self, limit: int = 10) -> List[Order]:
        pass

    # ------------------------------------------------------------------
    # Period analytics
    # ------------------------------------------------------------------

    @abstractmethod
    def period_summary(self, since: datetime, currency: str) -> Dict[str, Any]:
        """Counts and paid revenue for orders created at or after ``since``.

        Keys: ``total_orders``, ``paid_orders``, ``revenue``,
        ``unique_customers``, ``status_distribution``,
        ``payment_status_distribution``.
        """

    @abstractmethod
    def daily_paid_revenue(self, since: datetime, currency: str) -> Dict[date, Dict[str, Any]]:
        """Paid revenue and paid order count per calendar day."""

    @abstractmethod
    def top_products(self, since: datetime, currency: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Best sellers by revenue across paid orders."""
