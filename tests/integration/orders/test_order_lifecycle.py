"""End-to-end order lifecycle: checkout, payment webhook, kitchen updates."""

import json
from decimal import Decimal

import pytest

from storefront.catalog.models import DeliveryZone, Product
from storefront.notifications.constants import EventType
from storefront.notifications.models import CommunicationEvent
from storefront.payments.models import PaymentTransaction
from storefront.payments.webhooks import sign

pytestmark = pytest.mark.integration

SECRET = "sk_test_lifecycle"


def test_delivery_order_from_checkout_to_doorstep(
    api_client, staff_user, settings
):
    settings.PAYSTACK_SECRET_KEY = SECRET
    product = Product.objects.create(name="Suya Platter", price=Decimal("1500.00"))
    zone = DeliveryZone.objects.create(name="Yaba", base_fee=Decimal("500.00"))

    # 1. Anonymous checkout
    response = api_client.post(
        "/api/v1/orders/",
        {
            "customer_email": "Tolu@Example.com",
            "customer_name": "Tolu",
            "fulfillment_type": "delivery",
            "delivery_address": {"street": "12 Herbert Macaulay Way"},
            "delivery_zone_id": str(zone.id),
            "items": [{"product_id": str(product.id), "quantity": 2}],
            "client_total": "3500.00",
        },
        format="json",
    )
    assert response.status_code == 201
    order = response.json()
    assert order["total_amount"] == "3500.00"

    # 2. Paystack confirms the charge (amount in kobo)
    body = json.dumps(
        {
            "event": "charge.success",
            "data": {
                "reference": order["payment_reference"],
                "amount": 350000,
                "currency": "NGN",
                "channel": "card",
            },
        }
    ).encode("utf-8")
    response = api_client.post(
        "/api/v1/payments/webhook/paystack/",
        body,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=sign(body, SECRET),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert PaymentTransaction.objects.filter(
        provider_reference=order["payment_reference"]
    ).exists()

    # 3. Kitchen and rider move the order along
    api_client.force_authenticate(user=staff_user)
    for new_status in ("preparing", "out_for_delivery"):
        response = api_client.patch(
            f"/api/v1/orders/{order['id']}/", {"status": new_status}, format="json"
        )
        assert response.status_code == 200

    final = api_client.get(f"/api/v1/orders/{order['id']}/").json()
    assert final["status"] == "out_for_delivery"
    assert final["payment_status"] == "paid"
    assert [c["new_status"] for c in final["status_changes"]] == [
        "pending",
        "confirmed",
        "preparing",
        "out_for_delivery",
    ]

    events = CommunicationEvent.objects.filter(order_id=order["id"])
    assert set(events.values_list("event_type", flat=True)) == {
        EventType.ORDER_CONFIRMATION,
        EventType.CUSTOMER_WELCOME,
        EventType.PAYMENT_CONFIRMATION,
        EventType.ORDER_STATUS_UPDATE,
    }
    status_templates = set(
        events.filter(event_type=EventType.ORDER_STATUS_UPDATE).values_list(
            "template_key", flat=True
        )
    )
    assert status_templates == {"order_preparing", "out_for_delivery"}
    assert set(events.values_list("recipient_email", flat=True)) == {
        "tolu@example.com"
    }
