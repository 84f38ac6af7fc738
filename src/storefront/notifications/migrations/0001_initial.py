import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommunicationEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("order_confirmation", "Order confirmation"),
                            ("payment_confirmation", "Payment confirmation"),
                            ("order_status_update", "Order status update"),
                            ("customer_welcome", "Customer welcome"),
                        ],
                        max_length=50,
                    ),
                ),
                ("recipient_email", models.EmailField(max_length=254)),
                ("template_key", models.CharField(max_length=100)),
                ("variables", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("processing", "Processing"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                        ],
                        default="queued",
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.PositiveSmallIntegerField(
                        choices=[(1, "High"), (5, "Normal"), (9, "Low")],
                        default=5,
                    ),
                ),
                ("dedupe_key", models.CharField(max_length=255)),
                ("retry_count", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
                (
                    "scheduled_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="communication_events",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "communication_events",
                "ordering": ["priority", "created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "priority", "created_at"],
                        name="comm_events_dispatch_idx",
                    ),
                    models.Index(fields=["dedupe_key"], name="comm_events_dedupe_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event_type", "dedupe_key"),
                        name="communication_events_type_dedupe_uniq",
                    ),
                ],
            },
        ),
    ]
