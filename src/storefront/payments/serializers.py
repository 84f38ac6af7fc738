"""Payment DRF serializers (output only)."""

from __future__ import annotations

from rest_framework import serializers

from storefront.payments.constants import VerificationOutcome


class VerificationResultSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=VerificationOutcome.choices)
    success = serializers.BooleanField()
    duplicate = serializers.BooleanField()
    order_id = serializers.UUIDField(allow_null=True)
    order_number = serializers.CharField(allow_null=True)
    status = serializers.CharField(allow_null=True)
    payment_status = serializers.CharField(allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    expected_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, allow_null=True
    )
    message = serializers.CharField()
