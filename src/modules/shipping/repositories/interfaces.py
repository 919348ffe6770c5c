"""Shipping repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.shipping.models import Country, DeliveryRule


class ICountryRepository(IRepository["Country"]):
    @abstractmethod
    def get_by_code(self, country_code: str, active_only: bool = True) -> Optional[Country]:
        """Exact match on the (already normalised) ISO-2 code."""

    @abstractmethod
    def list_active(self) -> List[Country]:
        """Active countries ordered by display name."""


class IDeliveryRuleRepository(IRepository["DeliveryRule"]):
    @abstractmethod
    def find_matching(self, pieces: int, country_code: str) -> List[DeliveryRule]:
        """Active rules covering ``pieces`` for ``country_code`` or ``ALL``."""

    @abstractmethod
    def find_overlapping(
        self,
        min_pieces: int,
        max_pieces: int,
        country: str,
        exclude_id: Optional[str] = None,
    ) -> List[DeliveryRule]:
        """Active rules of exactly ``country`` whose band intersects the given one."""
