"""Shipping API views.

Public: the country picker and the checkout quote used by the storefront
before an order is placed.  Admin: countries/tax rates and delivery rules.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.shipping.dtos import (
    CheckoutQuoteDTO,
    CreateCountryDTO,
    CreateDeliveryRuleDTO,
    UpdateCountryDTO,
    UpdateDeliveryRuleDTO,
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
from modules.shipping.filters import DeliveryRuleFilter
from modules.shipping.models import DeliveryRule
from modules.shipping.repositories.django_repository import (
    CountryDjangoRepository,
    DeliveryRuleDjangoRepository,
)
from modules.shipping.serializers import (
    CheckoutQuoteSerializer,
    CountrySerializer,
    DeliveryRuleSerializer,
    PublicCountrySerializer,
)
from modules.shipping.services import (
    CountryAdminService,
    CountryTaxRegistry,
    DeliveryRuleAdminService,
    build_pricing_resolver,
)

COUNTRY_FIELDS = ("country_code", "country_name", "base_cost", "tax_percentage", "is_active")
RULE_FIELDS = (
    "min_pieces",
    "max_pieces",
    "delivery_cost",
    "description",
    "country",
    "is_active",
)


def _picked(data, fields) -> dict:
    return {field: data[field] for field in fields if field in data}


def _invalid(exc: Exception) -> Response:
    return error_response(str(exc), "invalid", status.HTTP_400_BAD_REQUEST)


def pricing_error_response(exc: Exception) -> Response:
    """HTTP translation of pricing-engine errors, shared with order creation."""
    if isinstance(exc, UnsupportedCountry):
        return error_response(
            str(exc),
            "unsupported_country",
            status.HTTP_404_NOT_FOUND,
            country_code=exc.country_code,
        )
    if isinstance(exc, NoDeliveryRule):
        return error_response(
            str(exc),
            "no_delivery_rule",
            status.HTTP_404_NOT_FOUND,
            pieces=exc.pieces,
        )
    if isinstance(exc, InvalidPieceCount):
        return error_response(str(exc), "invalid_piece_count", status.HTTP_400_BAD_REQUEST)
    raise exc


# ---------------------------------------------------------------------------
# Storefront (public)
# ---------------------------------------------------------------------------


class CountryListView(APIView):
    """GET /api/v1/shipping/countries/"""

    permission_classes = [AllowAny]

    def get(self, request: Request) -> Response:
        countries = CountryTaxRegistry(CountryDjangoRepository()).list_active()
        return Response(PublicCountrySerializer(countries, many=True).data)


class CheckoutPricingView(APIView):
    """POST /api/v1/shipping/calculate-checkout/

    Body ``{"pieces": 3, "countryCode": "us"}``; responds with the shipping
    cost, tax percentage and delivery description for that destination.
    """

    permission_classes = [AllowAny]
    throttle_scope = "checkout_pricing"

    def post(self, request: Request) -> Response:
        country_code = request.data.get("countryCode", request.data.get("country_code"))
        try:
            dto = CheckoutQuoteDTO(
                pieces=request.data.get("pieces"),
                country_code=country_code or "",
            )
        except (PydanticValidationError, ValueError) as exc:
            return _invalid(exc)

        try:
            result = build_pricing_resolver().resolve_pieces(dto.pieces, dto.country_code)
        except (UnsupportedCountry, NoDeliveryRule, InvalidPieceCount) as exc:
            return pricing_error_response(exc)

        return Response(CheckoutQuoteSerializer(result).data)


# ---------------------------------------------------------------------------
# Back office (admin)
# ---------------------------------------------------------------------------


class AdminCountryViewSet(ListModelMixin, GenericViewSet):
    permission_classes = [IsAdminUser]
    serializer_class = CountrySerializer
    filter_backends = [OrderingFilter]
    ordering_fields = ["country_name", "country_code", "tax_percentage"]
    ordering = ["country_name"]
    pagination_class = None

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CountryAdminService(repository=CountryDjangoRepository())

    def get_queryset(self):
        return self._service.list_countries()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            country = self._service.get_country(pk)
        except CountryNotFound as exc:
            return error_response(str(exc), "country_not_found", status.HTTP_404_NOT_FOUND)
        return Response(CountrySerializer(country).data)

    def create(self, request: Request) -> Response:
        try:
            dto = CreateCountryDTO(**_picked(request.data, COUNTRY_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            country = self._service.create_country(dto)
        except CountryAlreadyExists as exc:
            return error_response(str(exc), "country_exists", status.HTTP_409_CONFLICT)

        return Response(CountrySerializer(country).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        try:
            dto = UpdateCountryDTO(**_picked(request.data, COUNTRY_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            country = self._service.update_country(pk, dto)
        except CountryNotFound as exc:
            return error_response(str(exc), "country_not_found", status.HTTP_404_NOT_FOUND)
        except CountryAlreadyExists as exc:
            return error_response(str(exc), "country_exists", status.HTTP_409_CONFLICT)

        return Response(CountrySerializer(country).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self._service.delete_country(pk)
        except CountryNotFound as exc:
            return error_response(str(exc), "country_not_found", status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminDeliveryRuleViewSet(ListModelMixin, GenericViewSet):
    permission_classes = [IsAdminUser]
    serializer_class = DeliveryRuleSerializer
    queryset = DeliveryRule.objects.none()
    filterset_class = DeliveryRuleFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["country", "min_pieces", "delivery_cost"]
    ordering = ["country", "min_pieces"]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = DeliveryRuleAdminService(repository=DeliveryRuleDjangoRepository())

    def get_queryset(self):
        return self._service.list_rules()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            rule = self._service.get_rule(pk)
        except DeliveryRuleNotFound as exc:
            return error_response(
                str(exc), "delivery_rule_not_found", status.HTTP_404_NOT_FOUND
            )
        return Response(DeliveryRuleSerializer(rule).data)

    def create(self, request: Request) -> Response:
        try:
            dto = CreateDeliveryRuleDTO(**_picked(request.data, RULE_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            rule = self._service.create_rule(dto)
        except OverlappingDeliveryRule as exc:
            return error_response(
                str(exc), "overlapping_delivery_rule", status.HTTP_409_CONFLICT
            )

        return Response(DeliveryRuleSerializer(rule).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        try:
            dto = UpdateDeliveryRuleDTO(**_picked(request.data, RULE_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            rule = self._service.update_rule(pk, dto)
        except DeliveryRuleNotFound as exc:
            return error_response(
                str(exc), "delivery_rule_not_found", status.HTTP_404_NOT_FOUND
            )
        except OverlappingDeliveryRule as exc:
            return error_response(
                str(exc), "overlapping_delivery_rule", status.HTTP_409_CONFLICT
            )
        except ValueError as exc:
            return _invalid(exc)

        return Response(DeliveryRuleSerializer(rule).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self._service.delete_rule(pk)
        except DeliveryRuleNotFound as exc:
            return error_response(
                str(exc), "delivery_rule_not_found", status.HTTP_404_NOT_FOUND
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"], url_path="calculate")
    def calculate(self, request: Request) -> Response:
        """POST /api/v1/admin/delivery-rules/calculate/ ``{pieces, country?}``"""
        try:
            pieces = int(request.data.get("pieces"))
        except (TypeError, ValueError):
            return error_response(
                "Field 'pieces' must be an integer.", "invalid", status.HTTP_400_BAD_REQUEST
            )

        try:
            rule = self._service.calculate(pieces, request.data.get("country"))
        except (NoDeliveryRule, InvalidPieceCount) as exc:
            return pricing_error_response(exc)

        return Response(
            {
                "id": str(rule.id),
                "min_pieces": rule.min_pieces,
                "max_pieces": rule.max_pieces,
                "country": rule.country,
                "delivery_cost": str(rule.delivery_cost),
                "description": rule.description,
            }
        )
