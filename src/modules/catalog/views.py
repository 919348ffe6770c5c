"""Catalog API views.

Public, read-only product and category listings for the storefront plus the
admin back office (CRUD, hot deals, stock).  Domain exceptions are caught and
translated into HTTP status codes; generic exceptions are never swallowed.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.dtos import (
    CreateCategoryDTO,
    CreateProductDTO,
    HotDealDTO,
    UpdateCategoryDTO,
    UpdateProductDTO,
)
from modules.catalog.exceptions import (
    CategoryAlreadyExists,
    CategoryNotFound,
    ProductNotFound,
)
from modules.catalog.filters import ProductFilter
from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
)
from modules.catalog.serializers import CategorySerializer, ProductSerializer
from modules.catalog.services import CategoryService, ProductService
from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination

PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "currency",
    "category_id",
    "images",
    "stock_quantity",
    "featured",
    "status",
)
CATEGORY_FIELDS = ("name", "description", "is_active", "sort_order", "image_url")


def _product_not_found() -> Response:
    return error_response("Product not found.", "product_not_found", status.HTTP_404_NOT_FOUND)


def _category_not_found() -> Response:
    return error_response(
        "Category not found.", "category_not_found", status.HTTP_404_NOT_FOUND
    )


def _invalid(exc: Exception) -> Response:
    return error_response(str(exc), "invalid", status.HTTP_400_BAD_REQUEST)


def _picked(data, fields) -> dict:
    return {field: data[field] for field in fields if field in data}


def _product_service() -> ProductService:
    return ProductService(
        repository=ProductDjangoRepository(),
        category_repository=CategoryDjangoRepository(),
    )


# ---------------------------------------------------------------------------
# Storefront (public)
# ---------------------------------------------------------------------------


class ProductViewSet(ListModelMixin, GenericViewSet):
    """GET /api/v1/catalog/products/ and /{pk}/ (active products only)."""

    permission_classes = [AllowAny]
    serializer_class = ProductSerializer
    queryset = Product.objects.none()
    filterset_class = ProductFilter
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "price", "created_at"]
    ordering = ["-featured", "name"]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _product_service()

    def get_queryset(self):
        return self._service.list_public_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _product_not_found()
        if not product.is_sellable:
            return _product_not_found()
        return Response(ProductSerializer(product).data)


class CategoryViewSet(GenericViewSet):
    """GET /api/v1/catalog/categories/ (active categories, unpaginated)."""

    permission_classes = [AllowAny]
    serializer_class = CategorySerializer

    def list(self, request: Request) -> Response:
        service = CategoryService(repository=CategoryDjangoRepository())
        categories = service.list_categories(active_only=True)
        return Response(CategorySerializer(categories, many=True).data)


# ---------------------------------------------------------------------------
# Back office (admin)
# ---------------------------------------------------------------------------


class AdminProductViewSet(ListModelMixin, GenericViewSet):
    """Product CRUD for staff users.

    Lists include inactive products; soft-deleted ones are never shown.
    """

    permission_classes = [IsAdminUser]
    serializer_class = ProductSerializer
    queryset = Product.objects.none()
    filterset_class = ProductFilter
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "price", "stock_quantity", "created_at"]
    ordering = ["-created_at", "-id"]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _product_service()

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _product_not_found()
        return Response(ProductSerializer(product).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/admin/products/"""
        try:
            dto = CreateProductDTO(**_picked(request.data, PRODUCT_FIELDS[:-1]))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            product = self._service.create_product(dto)
        except CategoryNotFound:
            return _category_not_found()

        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/admin/products/{pk}/"""
        try:
            dto = UpdateProductDTO(**_picked(request.data, PRODUCT_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _product_not_found()
        except CategoryNotFound:
            return _category_not_found()

        return Response(ProductSerializer(product).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self._service.delete_product(pk)
        except ProductNotFound:
            return _product_not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post", "delete"], url_path="hot-deal")
    def hot_deal(self, request: Request, pk: str | None = None) -> Response:
        """POST sets a deal ``{deal_percentage, hot_deal_end}``; DELETE removes it."""
        try:
            if request.method == "DELETE":
                product = self._service.remove_hot_deal(pk)
            else:
                try:
                    dto = HotDealDTO(
                        deal_percentage=request.data.get("deal_percentage"),
                        hot_deal_end=request.data.get("hot_deal_end"),
                    )
                except (PydanticValidationError, ValueError) as exc:
                    return _invalid(exc)
                product = self._service.set_hot_deal(pk, dto)
        except ProductNotFound:
            return _product_not_found()
        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["patch"], url_path="stock")
    def update_stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/products/{pk}/stock/ with ``{"stock_quantity": N}``."""
        value = request.data.get("stock_quantity")
        if value is None:
            value = request.data.get("quantity")
        try:
            dto = UpdateProductDTO(stock_quantity=value)
        except (PydanticValidationError, ValueError) as exc:
            return _invalid(exc)
        if dto.stock_quantity is None:
            return error_response(
                "Field 'stock_quantity' is required.",
                "invalid",
                status.HTTP_400_BAD_REQUEST,
            )

        try:
            product = self._service.update_stock(pk, dto.stock_quantity)
        except ProductNotFound:
            return _product_not_found()
        return Response(ProductSerializer(product).data)


class AdminCategoryViewSet(GenericViewSet):
    permission_classes = [IsAdminUser]
    serializer_class = CategorySerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CategoryService(repository=CategoryDjangoRepository())

    def list(self, request: Request) -> Response:
        categories = self._service.list_categories()
        return Response(CategorySerializer(categories, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            category = self._service.get_category(pk)
        except CategoryNotFound:
            return _category_not_found()
        return Response(CategorySerializer(category).data)

    def create(self, request: Request) -> Response:
        try:
            dto = CreateCategoryDTO(**_picked(request.data, CATEGORY_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            category = self._service.create_category(dto)
        except CategoryAlreadyExists as exc:
            return error_response(str(exc), "category_exists", status.HTTP_409_CONFLICT)

        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        try:
            dto = UpdateCategoryDTO(**_picked(request.data, CATEGORY_FIELDS))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            return _invalid(exc)

        try:
            category = self._service.update_category(pk, dto)
        except CategoryNotFound:
            return _category_not_found()
        except CategoryAlreadyExists as exc:
            return error_response(str(exc), "category_exists", status.HTTP_409_CONFLICT)

        return Response(CategorySerializer(category).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self._service.delete_category(pk)
        except CategoryNotFound:
            return _category_not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)
