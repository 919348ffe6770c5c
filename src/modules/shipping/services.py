"""Checkout pricing engine and shipping back-office use cases.

``CountryTaxRegistry`` and ``DeliveryRuleTable`` are the two leaves;
``CheckoutPricingResolver`` composes them into the shipping + tax terms of a
checkout.  Resolution is a pure function of the current configuration: no
caching, no retries, and the same inputs always produce the same result.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional

import structlog
from django.db import IntegrityError, transaction

from modules.shipping.constants import ALL_COUNTRIES, normalize_country_code
from modules.shipping.dtos import (
    CountryTaxDTO,
    DeliveryRuleDTO,
    PricingResultDTO,
    TotalsDTO,
)
from modules.shipping.exceptions import (
    CountryAlreadyExists,
    CountryNotFound,
    DeliveryRuleNotFound,
    InvalidPieceCount,
    NoDeliveryRule,
    OverlappingDeliveryRule,
    UnsupportedCountry,
)
from modules.shipping.models import Country, DeliveryRule
from shared.domain.money import quantize

if TYPE_CHECKING:
    from modules.shipping.dtos import (
        CreateCountryDTO,
        CreateDeliveryRuleDTO,
        UpdateCountryDTO,
        UpdateDeliveryRuleDTO,
    )
    from modules.shipping.repositories.interfaces import (
        ICountryRepository,
        IDeliveryRuleRepository,
    )

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


# ---------------------------------------------------------------------------
# Pricing engine
# ---------------------------------------------------------------------------


class CountryTaxRegistry:
    """Tax rate and display name per destination country."""

    def __init__(self, repository: ICountryRepository) -> None:
        self._repo = repository

    def resolve(self, country_code: str) -> CountryTaxDTO:
        """Look up an active country, case-insensitively.

        Raises:
            UnsupportedCountry: unknown or inactive code.  There is no
                fallback rate.
        """
        code = normalize_country_code(country_code)
        country = self._repo.get_by_code(code) if code else None
        if country is None:
            logger.info("pricing.unsupported_country", country_code=code)
            raise UnsupportedCountry(code)
        return CountryTaxDTO.model_validate(country)

    def list_active(self) -> List[CountryTaxDTO]:
        return [CountryTaxDTO.model_validate(c) for c in self._repo.list_active()]


class DeliveryRuleTable:
    """Piece-count bands mapped to a delivery cost."""

    def __init__(self, repository: IDeliveryRuleRepository) -> None:
        self._repo = repository

    def resolve(self, piece_count: int, country_code: str) -> DeliveryRuleDTO:
        """Pick the rule for ``piece_count`` items shipped to ``country_code``.

        A rule for the exact country always beats an ``ALL`` rule.  When
        several rules of the same specificity match, the one with the lowest
        ``min_pieces`` wins (then ``max_pieces``, then id) and a warning is
        logged, since the configuration is ambiguous.

        Raises:
            InvalidPieceCount: ``piece_count < 1``.
            NoDeliveryRule: nothing covers the piece count.
        """
        if piece_count < 1:
            raise InvalidPieceCount(f"Piece count must be at least 1, got {piece_count}.")

        code = normalize_country_code(country_code) or ALL_COUNTRIES
        candidates = self._repo.find_matching(piece_count, code)

        pool = [r for r in candidates if r.country == code and code != ALL_COUNTRIES]
        if not pool:
            pool = [r for r in candidates if r.country == ALL_COUNTRIES]
        if not pool:
            logger.info(
                "pricing.no_delivery_rule",
                pieces=piece_count,
                country_code=code,
            )
            raise NoDeliveryRule(piece_count, code)

        pool.sort(key=lambda r: (r.min_pieces, r.max_pieces, str(r.id)))
        chosen = pool[0]
        if len(pool) > 1:
            logger.warning(
                "delivery_rule.ambiguous_match",
                pieces=piece_count,
                country_code=code,
                rule_ids=[str(r.id) for r in pool],
                chosen_rule_id=str(chosen.id),
            )
        return DeliveryRuleDTO.model_validate(chosen)


class CheckoutPricingResolver:
    """Shipping cost + tax terms for a cart and a destination."""

    def __init__(self, registry: CountryTaxRegistry, rule_table: DeliveryRuleTable) -> None:
        self._registry = registry
        self._rules = rule_table

    def resolve(self, cart_lines: Iterable, country_code: str) -> PricingResultDTO:
        """``cart_lines`` need only a ``quantity`` attribute."""
        pieces = sum(line.quantity for line in cart_lines)
        return self.resolve_pieces(pieces, country_code)

    def resolve_pieces(self, pieces: int, country_code: str) -> PricingResultDTO:
        country = self._registry.resolve(country_code)
        rule = self._rules.resolve(pieces, country.country_code)
        result = PricingResultDTO(
            country_code=country.country_code,
            country_name=country.country_name,
            pieces=pieces,
            shipping_cost=quantize(rule.delivery_cost),
            tax_percentage=country.tax_percentage,
            delivery_description=rule.description or "",
        )
        logger.info(
            "pricing.resolved",
            country_code=result.country_code,
            pieces=pieces,
            rule_id=str(rule.id),
            shipping_cost=str(result.shipping_cost),
            tax_percentage=str(result.tax_percentage),
        )
        return result


def compose_totals(subtotal: Decimal, pricing: PricingResultDTO) -> TotalsDTO:
    """``total = subtotal + subtotal * tax% + shipping``, each rounded half-up to cents."""
    subtotal = quantize(subtotal)
    tax_amount = quantize(subtotal * pricing.tax_percentage / HUNDRED)
    shipping_cost = quantize(pricing.shipping_cost)
    return TotalsDTO(
        subtotal=subtotal,
        tax_percentage=pricing.tax_percentage,
        tax_amount=tax_amount,
        shipping_cost=shipping_cost,
        total=quantize(subtotal + tax_amount + shipping_cost),
    )


def build_pricing_resolver() -> CheckoutPricingResolver:
    """Resolver wired to the Django repositories."""
    from modules.shipping.repositories.django_repository import (
        CountryDjangoRepository,
        DeliveryRuleDjangoRepository,
    )

    return CheckoutPricingResolver(
        registry=CountryTaxRegistry(CountryDjangoRepository()),
        rule_table=DeliveryRuleTable(DeliveryRuleDjangoRepository()),
    )


# ---------------------------------------------------------------------------
# Back office
# ---------------------------------------------------------------------------


class CountryAdminService:
    def __init__(self, repository: ICountryRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_country(self, dto: CreateCountryDTO) -> Country:
        if self._repo.get_by_code(dto.country_code, active_only=False):
            raise CountryAlreadyExists(
                f"Country {dto.country_code} already exists."
            )
        country = Country(
            country_code=dto.country_code,
            country_name=dto.country_name,
            base_cost=dto.base_cost,
            tax_percentage=dto.tax_percentage,
            is_active=dto.is_active,
        )
        return self._save(country)

    @transaction.atomic
    def update_country(self, id: str, dto: UpdateCountryDTO) -> Country:
        country = self.get_country(id)
        if dto.country_code is not None and dto.country_code != country.country_code:
            if self._repo.get_by_code(dto.country_code, active_only=False):
                raise CountryAlreadyExists(
                    f"Country {dto.country_code} already exists."
                )
        for field in ("country_code", "country_name", "base_cost", "tax_percentage", "is_active"):
            value = getattr(dto, field)
            if value is not None:
                setattr(country, field, value)
        return self._save(country)

    @transaction.atomic
    def delete_country(self, id: str) -> None:
        if not self._repo.delete(id):
            raise CountryNotFound(f"Country {id} not found.")

    def get_country(self, id: str) -> Country:
        country = self._repo.get_by_id(id)
        if not country:
            raise CountryNotFound(f"Country {id} not found.")
        return country

    def list_countries(self):
        return self._repo.list()

    def _save(self, country: Country) -> Country:
        try:
            with transaction.atomic():
                return self._repo.save(country)
        except IntegrityError as exc:
            raise CountryAlreadyExists(
                f"Country {country.country_code} already exists."
            ) from exc


class DeliveryRuleAdminService:
    """CRUD for delivery rules with band-overlap validation.

    Two active rules for the same country value may not share a piece
    count.  An ``ALL`` rule and a country rule may overlap: the country rule
    simply wins at resolution time.
    """

    def __init__(self, repository: IDeliveryRuleRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_rule(self, dto: CreateDeliveryRuleDTO) -> DeliveryRule:
        if dto.is_active:
            self._ensure_no_overlap(dto.min_pieces, dto.max_pieces, dto.country)
        rule = DeliveryRule(
            min_pieces=dto.min_pieces,
            max_pieces=dto.max_pieces,
            delivery_cost=dto.delivery_cost,
            description=dto.description,
            country=dto.country,
            is_active=dto.is_active,
        )
        return self._save(rule)

    @transaction.atomic
    def update_rule(self, id: str, dto: UpdateDeliveryRuleDTO) -> DeliveryRule:
        rule = self.get_rule(id)
        for field in (
            "min_pieces",
            "max_pieces",
            "delivery_cost",
            "description",
            "country",
            "is_active",
        ):
            value = getattr(dto, field)
            if value is not None:
                setattr(rule, field, value)

        if rule.max_pieces < rule.min_pieces:
            raise ValueError("max_pieces must be greater than or equal to min_pieces.")
        if rule.is_active:
            self._ensure_no_overlap(
                rule.min_pieces, rule.max_pieces, rule.country, exclude_id=str(rule.id)
            )
        return self._save(rule)

    @transaction.atomic
    def delete_rule(self, id: str) -> None:
        if not self._repo.delete(id):
            raise DeliveryRuleNotFound(f"Delivery rule {id} not found.")

    def get_rule(self, id: str) -> DeliveryRule:
        rule = self._repo.get_by_id(id)
        if not rule:
            raise DeliveryRuleNotFound(f"Delivery rule {id} not found.")
        return rule

    def list_rules(self, country: Optional[str] = None):
        if country:
            return self._repo.list({"country": normalize_country_code(country)})
        return self._repo.list()

    def calculate(self, pieces: int, country: Optional[str] = None) -> DeliveryRuleDTO:
        """Preview which rule a piece count resolves to, without tax."""
        return DeliveryRuleTable(self._repo).resolve(pieces, country or ALL_COUNTRIES)

    def _ensure_no_overlap(
        self,
        min_pieces: int,
        max_pieces: int,
        country: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        clashes = self._repo.find_overlapping(min_pieces, max_pieces, country, exclude_id)
        if clashes:
            clash = clashes[0]
            logger.warning(
                "delivery_rule.overlap_rejected",
                country=country,
                min_pieces=min_pieces,
                max_pieces=max_pieces,
                clashing_rule_id=str(clash.id),
            )
            raise OverlappingDeliveryRule(
                f"Overlapping piece range for this country: {country} "
                f"{min_pieces}-{max_pieces} intersects "
                f"{clash.min_pieces}-{clash.max_pieces}."
            )

    def _save(self, rule: DeliveryRule) -> DeliveryRule:
        try:
            with transaction.atomic():
                return self._repo.save(rule)
        except IntegrityError as exc:
            raise OverlappingDeliveryRule(
                "Overlapping piece range for this country."
            ) from exc
