"""Paystack webhook decoding.

Paystack signs the raw request body with HMAC-SHA512 using the secret
key and sends the hex digest in ``X-Paystack-Signature``.  Amounts are in
kobo.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storefront.payments.constants import PAYSTACK_EVENT_STATUSES
from storefront.payments.dtos import VerifyPaymentDTO
from storefront.payments.exceptions import (
    InvalidWebhookPayload,
    InvalidWebhookSignature,
)

SIGNATURE_HEADER = "HTTP_X_PAYSTACK_SIGNATURE"


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> None:
    """Raise ``InvalidWebhookSignature`` unless *signature* matches *body*."""
    if not secret or not signature:
        raise InvalidWebhookSignature("Missing webhook signature or secret.")
    if not hmac.compare_digest(sign(body, secret), signature):
        raise InvalidWebhookSignature("Webhook signature mismatch.")


def parse_event(
    body: bytes, context: Optional[Dict[str, Any]] = None
) -> Optional[VerifyPaymentDTO]:
    """Translate a webhook body into a verification request.

    Returns ``None`` for events that do not report a charge result.
    """
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidWebhookPayload("Webhook body is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise InvalidWebhookPayload("Webhook body must be a JSON object.")

    reported_status = PAYSTACK_EVENT_STATUSES.get(payload.get("event"))
    if reported_status is None:
        return None

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise InvalidWebhookPayload("Webhook event data must be a JSON object.")
    try:
        amount = Decimal(str(data.get("amount"))) / 100
        return VerifyPaymentDTO(
            reference=str(data.get("reference") or ""),
            reported_status=reported_status,
            amount=amount,
            currency=str(data.get("currency") or "NGN"),
            gateway_response=data,
            context={"source": "paystack_webhook", **(context or {})},
        )
    except (InvalidOperation, ValidationError) as exc:
        raise InvalidWebhookPayload("Webhook event is missing reference or amount.") from exc
