"""Shipping URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import SimpleRouter

from modules.shipping.views import (
    AdminCountryViewSet,
    AdminDeliveryRuleViewSet,
    CheckoutPricingView,
    CountryListView,
)

urlpatterns = [
    path("countries/", CountryListView.as_view(), name="shipping-countries"),
    path(
        "calculate-checkout/",
        CheckoutPricingView.as_view(),
        name="shipping-calculate-checkout",
    ),
]

admin_router = SimpleRouter(trailing_slash=True)
admin_router.register("countries", AdminCountryViewSet, basename="admin-country")
admin_router.register(
    "delivery-rules", AdminDeliveryRuleViewSet, basename="admin-delivery-rule"
)

admin_urlpatterns = admin_router.urls
