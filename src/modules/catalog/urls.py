"""Catalog URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter, SimpleRouter

from modules.catalog.views import (
    AdminCategoryViewSet,
    AdminProductViewSet,
    CategoryViewSet,
    ProductViewSet,
)

router = DefaultRouter(trailing_slash=True)
router.register("products", ProductViewSet, basename="catalog-product")
router.register("categories", CategoryViewSet, basename="catalog-category")

urlpatterns = router.urls

# Mounted under /api/v1/admin/ by config.urls; SimpleRouter so the admin
# prefix shared with other modules gets no competing API root view.
admin_router = SimpleRouter(trailing_slash=True)
admin_router.register("products", AdminProductViewSet, basename="admin-product")
admin_router.register("categories", AdminCategoryViewSet, basename="admin-category")

admin_urlpatterns = admin_router.urls
