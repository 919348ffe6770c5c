"""Base repository contract shared by every bounded context.

Services receive repositories through their constructors and only ever see
these abstractions; the Django ORM lives behind the concrete
``*DjangoRepository`` classes of each module.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, Protocol, TypeVar

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Listing(Protocol[T_co]):
    """What ``list()`` hands back: a QuerySet or a plain list of entities.

    Views chain DRF filter backends on QuerySets, so repositories backing a
    paginated endpoint return one.
    """

    def __iter__(self) -> Iterable[T_co]: ...


class IRepository(ABC, Generic[T]):
    """CRUD contract for an aggregate ``T`` (``Order``, ``Product``, ``DeliveryRule``...)."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """``None`` when the row is missing or ``id`` is malformed."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Listing[T]:
        """Entities matching the ORM-style ``filters``."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or update ``entity``."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """``False`` when there was nothing to delete."""
