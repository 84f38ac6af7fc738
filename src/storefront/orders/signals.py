"""Signals for automatic order status history tracking.

Any code path that saves an ``Order`` with a changed ``status`` gets
exactly one ``OrderStatusChange`` row.  Callers pass the actor and the
reason through transient attributes on the instance:

    order._status_changed_by = actor_id
    order._status_change_reason = "Kitchen started"
"""

from __future__ import annotations

from typing import Optional, Protocol, cast

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from storefront.orders.models import Order, OrderStatusChange


class _OrderStatusAware(Protocol):
    _previous_status: str | None
    _status_changed_by: str | None
    _status_change_reason: str | None


_TRANSIENT_ATTRS = (
    "_previous_status",
    "_status_changed_by",
    "_status_change_reason",
)


@receiver(pre_save, sender=Order)
def _capture_previous_status(sender, instance: Order, **kwargs) -> None:
    status_instance = cast(_OrderStatusAware, instance)
    update_fields = kwargs.get("update_fields")
    if instance._state.adding:
        status_instance._previous_status = None
        return
    if update_fields is not None and "status" not in update_fields:
        status_instance._previous_status = instance.status
        return
    status_instance._previous_status = (
        sender.objects.filter(pk=instance.pk).values_list("status", flat=True).first()
    )


@receiver(post_save, sender=Order)
def _record_status_change(sender, instance: Order, created: bool, **kwargs) -> None:
    status_instance = cast(_OrderStatusAware, instance)
    previous_status: Optional[str] = getattr(status_instance, "_previous_status", None)

    if not created and previous_status == instance.status:
        _clear_transient_status_attrs(instance)
        return

    reason = getattr(status_instance, "_status_change_reason", None)
    if reason is None:
        reason = "Order created" if created else ""

    OrderStatusChange.objects.create(
        order=instance,
        old_status=None if created else previous_status,
        new_status=instance.status,
        changed_by=getattr(status_instance, "_status_changed_by", None),
        reason=reason,
    )
    _clear_transient_status_attrs(instance)


def _clear_transient_status_attrs(instance: Order) -> None:
    for attr in _TRANSIENT_ATTRS:
        if hasattr(instance, attr):
            delattr(instance, attr)
