"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are the
contracts between the API layer (DRF serializers) and the Service layer.
DTOs are immutable (``frozen=True``).

Carts carry only product ids and quantities: names, prices, currency and
images are always read from the catalog on the server.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from modules.orders.constants import PaymentMethod


class CartLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: EmailStr
    first_name: str
    last_name: str
    address: str
    city: str
    country_code: str
    zip_code: str = ""
    phone: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("first_name", "last_name", "address", "city")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip()

    @field_validator("country_code")
    @classmethod
    def country_code_upper(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Country code is required.")
        return v


class CreateOrderDTO(BaseModel):
    """Checkout request: who, what, and how they pay."""

    model_config = ConfigDict(frozen=True)

    customer: CustomerDTO
    items: List[CartLineDTO]
    payment_method: PaymentMethod
    notes: str = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CartLineDTO]) -> List[CartLineDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    def merged_items(self) -> List[CartLineDTO]:
        """Lines with repeated products folded into one, first-seen order kept."""
        quantities: Dict[UUID, int] = {}
        for line in self.items:
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
        return [CartLineDTO(product_id=pid, quantity=qty) for pid, qty in quantities.items()]


class PaymentResultDTO(BaseModel):
    """What a payment provider reported for an order.

    ``amount_minor`` and ``currency`` are set when the provider states the
    charged amount (e.g. a Stripe PaymentIntent); they are checked against
    the order total before the order is marked paid.
    """

    model_config = ConfigDict(frozen=True)

    provider_status: str
    payment_details: Dict[str, Any] = {}
    amount_minor: Optional[int] = None
    currency: Optional[str] = None

    @field_validator("provider_status")
    @classmethod
    def status_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Provider status is required.")
        return v.strip()


class DashboardStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_products: int
    total_orders: int
    orders_by_status: Dict[str, int]
    revenue: Dict[str, Decimal]
    recent_orders: List[Dict[str, Any]]
    low_stock_products: List[Dict[str, Any]]


class DailyRevenueDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    revenue: Decimal
    orders: int


class TopProductDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    name: str
    quantity: int
    revenue: Decimal


class OrderAnalyticsDTO(BaseModel):
    """Sales over a trailing window of whole days ending today.

    Revenue, average order value, the daily series and top products count
    paid orders only; the distributions count every order in the window.
    """

    model_config = ConfigDict(frozen=True)

    period: str
    currency: str
    start_date: date
    end_date: date
    total_orders: int
    paid_orders: int
    total_revenue: Decimal
    average_order_value: Decimal
    unique_customers: int
    daily_revenue: List[DailyRevenueDTO]
    status_distribution: Dict[str, int]
    payment_status_distribution: Dict[str, int]
    top_products: List[TopProductDTO]
