"""Order URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter, SimpleRouter

from modules.orders.views import AdminOrderViewSet, OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls

admin_router = SimpleRouter(trailing_slash=True)
admin_router.register("orders", AdminOrderViewSet, basename="admin-order")

admin_urlpatterns = admin_router.urls
