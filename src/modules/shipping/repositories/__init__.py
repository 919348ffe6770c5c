from modules.shipping.repositories.django_repository import (
    CountryDjangoRepository,
    DeliveryRuleDjangoRepository,
)
from modules.shipping.repositories.interfaces import (
    ICountryRepository,
    IDeliveryRuleRepository,
)

__all__ = [
    "CountryDjangoRepository",
    "DeliveryRuleDjangoRepository",
    "ICountryRepository",
    "IDeliveryRuleRepository",
]
