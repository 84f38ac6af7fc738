"""Payment API views.

The Paystack webhook is the only public entry point.  It authenticates
the caller by signature, not by user, so DRF authentication is disabled
for it.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from storefront.core.middleware import client_ip
from storefront.orders.repositories import OrderDjangoRepository
from storefront.payments.constants import VerificationOutcome
from storefront.payments.exceptions import (
    InvalidWebhookPayload,
    InvalidWebhookSignature,
    PaymentProcessingError,
)
from storefront.payments.repositories import PaymentTransactionDjangoRepository
from storefront.payments.serializers import VerificationResultSerializer
from storefront.payments.services import PaymentVerificationService
from storefront.payments.webhooks import SIGNATURE_HEADER, parse_event, verify_signature

logger = structlog.get_logger(__name__)

_OUTCOME_STATUS = {
    VerificationOutcome.CONFIRMED: status.HTTP_200_OK,
    VerificationOutcome.DUPLICATE: status.HTTP_200_OK,
    VerificationOutcome.PAYMENT_FAILED: status.HTTP_200_OK,
    VerificationOutcome.PAYMENT_PENDING: status.HTTP_200_OK,
    VerificationOutcome.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    VerificationOutcome.AMOUNT_MISMATCH: status.HTTP_409_CONFLICT,
}


class PaystackWebhookView(APIView):
    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_scope = "payment_webhook"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = PaymentVerificationService(
            order_repository=OrderDjangoRepository(),
            transaction_repository=PaymentTransactionDjangoRepository(),
        )

    def post(self, request: Request) -> Response:
        """POST /api/v1/payments/webhook/paystack/"""
        body = request.body
        try:
            verify_signature(
                body, request.META.get(SIGNATURE_HEADER), settings.PAYSTACK_SECRET_KEY
            )
        except InvalidWebhookSignature as exc:
            logger.warning("payment.webhook_rejected", reason=str(exc))
            return Response(
                {"detail": "Invalid signature."},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        try:
            dto = parse_event(
                body,
                context={
                    "ip": client_ip(request),
                    "user_agent": request.META.get("HTTP_USER_AGENT", ""),
                },
            )
        except InvalidWebhookPayload as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if dto is None:
            return Response({"detail": "Event ignored."}, status=status.HTTP_200_OK)

        try:
            result = self._service.verify_payment(dto)
        except PaymentProcessingError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(
            VerificationResultSerializer(result.model_dump()).data,
            status=_OUTCOME_STATUS[result.outcome],
        )
