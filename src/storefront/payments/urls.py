"""Payment URL configuration."""

from __future__ import annotations

from django.urls import path

from storefront.payments.views import PaystackWebhookView

urlpatterns = [
    path(
        "payments/webhook/paystack/",
        PaystackWebhookView.as_view(),
        name="paystack-webhook",
    ),
]
