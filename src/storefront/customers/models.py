"""Customer account model.

Orders carry their own snapshot of the customer's identity (email, name,
phone); the account link is optional so guest checkout works.  An
inactive account cannot place orders (enforced at the order service).
"""

from __future__ import annotations

from django.db import models

from storefront.core.models import BaseModel


class CustomerAccount(BaseModel):
    """Registered customer.  ``email`` is normalised to lower-case on save."""

    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customer_accounts"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active"], name="customers_active_idx"),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display (email local part is masked)
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        domain = self.email.split("@")[-1] if self.email else "?"
        return f"{self.name} (***@{domain})"
