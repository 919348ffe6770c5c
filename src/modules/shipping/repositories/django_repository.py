"""Django ORM implementations of the shipping repositories.

Look-ups follow the Null Object pattern: ``None`` instead of raising, the
Service Layer decides which domain exception a miss becomes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from modules.shipping.constants import ALL_COUNTRIES
from modules.shipping.models import Country, DeliveryRule
from modules.shipping.repositories.interfaces import (
    ICountryRepository,
    IDeliveryRuleRepository,
)

logger = structlog.get_logger(__name__)


class CountryDjangoRepository(ICountryRepository):
    def get_by_id(self, id: str) -> Optional[Country]:
        try:
            return Country.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_code(self, country_code: str, active_only: bool = True) -> Optional[Country]:
        queryset = Country.objects.filter(country_code=country_code)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.first()

    def list_active(self) -> List[Country]:
        return list(Country.objects.filter(is_active=True).order_by("country_name"))

    def list(self, filters: Optional[Dict[str, Any]] = None):
        queryset = Country.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Country) -> Country:
        entity.save()
        logger.info("country.saved", country_code=entity.country_code)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        country = self.get_by_id(id)
        if not country:
            return False
        country.delete()
        logger.info("country.deleted", country_code=country.country_code)
        return True


class DeliveryRuleDjangoRepository(IDeliveryRuleRepository):
    def get_by_id(self, id: str) -> Optional[DeliveryRule]:
        try:
            return DeliveryRule.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def find_matching(self, pieces: int, country_code: str) -> List[DeliveryRule]:
        return list(
            DeliveryRule.objects.filter(
                Q(country=country_code) | Q(country=ALL_COUNTRIES),
                is_active=True,
                min_pieces__lte=pieces,
                max_pieces__gte=pieces,
            )
        )

    def find_overlapping(
        self,
        min_pieces: int,
        max_pieces: int,
        country: str,
        exclude_id: Optional[str] = None,
    ) -> List[DeliveryRule]:
        queryset = DeliveryRule.objects.filter(
            country=country,
            is_active=True,
            min_pieces__lte=max_pieces,
            max_pieces__gte=min_pieces,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return list(queryset)

    def list(self, filters: Optional[Dict[str, Any]] = None):
        queryset = DeliveryRule.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: DeliveryRule) -> DeliveryRule:
        entity.save()
        logger.info(
            "delivery_rule.saved",
            rule_id=str(entity.id),
            country=entity.country,
            min_pieces=entity.min_pieces,
            max_pieces=entity.max_pieces,
        )
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        rule = self.get_by_id(id)
        if not rule:
            return False
        rule.delete()
        logger.info("delivery_rule.deleted", rule_id=str(id))
        return True
