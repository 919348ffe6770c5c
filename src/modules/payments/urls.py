"""Payments URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.payments.views import PaymentIntentView, StripeWebhookView

urlpatterns = [
    path("intents/", PaymentIntentView.as_view(), name="payment-intents"),
    path("webhook/", StripeWebhookView.as_view(), name="payment-webhook"),
]
