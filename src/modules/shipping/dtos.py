"""Shipping DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  Results of the
pricing engine (``CountryTaxDTO``, ``DeliveryRuleDTO``, ``PricingResultDTO``,
``TotalsDTO``) are immutable snapshots, never live ORM rows, so callers can
store them on an order without re-reading configuration later.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.shipping.constants import (
    ALL_COUNTRIES,
    DEFAULT_TAX_PERCENTAGE,
    normalize_country_code,
)


def _country_code(v: str) -> str:
    v = normalize_country_code(v)
    if len(v) != 2 or not v.isalpha():
        raise ValueError("Country code must be a two-letter ISO code.")
    return v


def _rule_country(v: Optional[str]) -> str:
    v = normalize_country_code(v) or ALL_COUNTRIES
    if v == ALL_COUNTRIES:
        return v
    return _country_code(v)


def _percentage(v: Decimal) -> Decimal:
    if not Decimal("0") <= v <= Decimal("100"):
        raise ValueError("Tax percentage must be between 0 and 100.")
    return v


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------


class CountryTaxDTO(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    country_code: str
    country_name: str
    tax_percentage: Decimal


class DeliveryRuleDTO(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    min_pieces: int
    max_pieces: int
    country: str
    delivery_cost: Decimal
    description: str = ""


class PricingResultDTO(BaseModel):
    """Shipping and tax terms for one checkout attempt."""

    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    pieces: int
    shipping_cost: Decimal
    tax_percentage: Decimal
    delivery_description: str = ""


class TotalsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    tax_percentage: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total: Decimal


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CheckoutQuoteDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    pieces: int
    country_code: str

    @field_validator("pieces")
    @classmethod
    def pieces_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Pieces must be at least 1.")
        return v

    @field_validator("country_code")
    @classmethod
    def country_code_required(cls, v: str) -> str:
        v = normalize_country_code(v)
        if not v:
            raise ValueError("Country code is required.")
        return v


class CreateCountryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    base_cost: Decimal = Decimal("0")
    tax_percentage: Decimal = DEFAULT_TAX_PERCENTAGE
    is_active: bool = True

    @field_validator("country_code")
    @classmethod
    def code_is_iso(cls, v: str) -> str:
        return _country_code(v)

    @field_validator("tax_percentage")
    @classmethod
    def tax_in_range(cls, v: Decimal) -> Decimal:
        return _percentage(v)

    @field_validator("country_name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Country name must not be empty.")
        return v.strip()

    @field_validator("base_cost")
    @classmethod
    def cost_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Base cost cannot be negative.")
        return v


class UpdateCountryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_code: Optional[str] = None
    country_name: Optional[str] = None
    base_cost: Optional[Decimal] = None
    tax_percentage: Optional[Decimal] = None
    is_active: Optional[bool] = None

    @field_validator("country_code")
    @classmethod
    def code_is_iso(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _country_code(v)

    @field_validator("tax_percentage")
    @classmethod
    def tax_in_range(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return None if v is None else _percentage(v)

    @field_validator("base_cost")
    @classmethod
    def cost_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Base cost cannot be negative.")
        return v


class CreateDeliveryRuleDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_pieces: int
    max_pieces: int
    delivery_cost: Decimal
    description: str = ""
    country: str = ALL_COUNTRIES
    is_active: bool = True

    @field_validator("country", mode="before")
    @classmethod
    def country_or_all(cls, v: Optional[str]) -> str:
        return _rule_country(v)

    @field_validator("min_pieces")
    @classmethod
    def min_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_pieces must be at least 1.")
        return v

    @field_validator("delivery_cost")
    @classmethod
    def cost_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Delivery cost cannot be negative.")
        return v

    @model_validator(mode="after")
    def band_is_ordered(self) -> CreateDeliveryRuleDTO:
        if self.max_pieces < self.min_pieces:
            raise ValueError("max_pieces must be greater than or equal to min_pieces.")
        return self


class UpdateDeliveryRuleDTO(BaseModel):
    """Partial update; the resulting band is re-validated by the service."""

    model_config = ConfigDict(frozen=True)

    min_pieces: Optional[int] = None
    max_pieces: Optional[int] = None
    delivery_cost: Optional[Decimal] = None
    description: Optional[str] = None
    country: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("country")
    @classmethod
    def country_or_all(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _rule_country(v)

    @field_validator("min_pieces", "max_pieces")
    @classmethod
    def at_least_one(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Piece bounds must be at least 1.")
        return v

    @field_validator("delivery_cost")
    @classmethod
    def cost_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Delivery cost cannot be negative.")
        return v
