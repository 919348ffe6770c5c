"""Catalog DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``).

Prices may arrive as numbers or as legacy display strings
(``"$42.00 USD"``); the ``before`` validators below are the single place
where such strings are parsed into ``Decimal`` + currency.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from django.conf import settings
from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.domain.money import Money

SUPPORTED_CURRENCIES = {"USD", "EUR", "GBP", "INR", "PKR", "AED", "SAR", "CAD", "AUD", "JPY"}


def _split_price(data: Any) -> Any:
    """Turn ``{"price": "$42.00 USD"}`` into ``{"price": 42.00, "currency": "USD"}``."""
    if not isinstance(data, dict) or not isinstance(data.get("price"), str):
        return data
    data = dict(data)
    money = Money.parse(
        data["price"], default_currency=data.get("currency") or settings.STOREFRONT_CURRENCY
    )
    data["price"] = money.amount
    if not data.get("currency"):
        data["currency"] = money.currency
    return data


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests."""

    model_config = ConfigDict(frozen=True)

    name: str
    price: Decimal
    currency: str = Field(default_factory=lambda: settings.STOREFRONT_CURRENCY)
    description: str = ""
    category_id: Optional[UUID] = None
    images: List[str] = []
    stock_quantity: int = 0
    featured: bool = False

    @model_validator(mode="before")
    @classmethod
    def split_legacy_price(cls, data: Any) -> Any:
        return _split_price(data)

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("currency")
    @classmethod
    def currency_must_be_supported(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency {v!r}.")
        return v

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v


class UpdateProductDTO(BaseModel):
    """Partial update; only non-``None`` fields are applied."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    images: Optional[List[str]] = None
    stock_quantity: Optional[int] = None
    featured: Optional[bool] = None
    status: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def split_legacy_price(cls, data: Any) -> Any:
        return _split_price(data)

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("currency")
    @classmethod
    def currency_must_be_supported(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        if v not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency {v!r}.")
        return v

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in {"active", "inactive"}:
            raise ValueError("Status must be 'active' or 'inactive'.")
        return v


class HotDealDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    deal_percentage: Decimal
    hot_deal_end: datetime

    @field_validator("deal_percentage")
    @classmethod
    def percentage_in_range(cls, v: Decimal) -> Decimal:
        if not Decimal("0") < v < Decimal("100"):
            raise ValueError("Deal percentage must be between 0 and 100 (exclusive).")
        return v

    @field_validator("hot_deal_end")
    @classmethod
    def end_must_be_future(cls, v: datetime) -> datetime:
        if timezone.is_naive(v):
            v = timezone.make_aware(v)
        if v <= timezone.now():
            raise ValueError("Hot deal end must be in the future.")
        return v


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CreateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    is_active: bool = True
    sort_order: int = 0
    image_url: str = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()


class UpdateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    image_url: Optional[str] = None
