"""Payment domain exceptions.

Routine verification outcomes (duplicate, amount mismatch, unknown
reference) are reported through ``VerificationResult``; exceptions are
reserved for failures the caller must not ignore.
"""

from __future__ import annotations


class PaymentError(Exception):
    """Base class for payment-domain failures."""


class PaymentProcessingError(PaymentError):
    """Verification failed unexpectedly; nothing was written."""


class InvalidWebhookSignature(PaymentError):
    """The webhook body does not match the provider signature."""


class InvalidWebhookPayload(PaymentError):
    """The webhook body is not a usable event."""
