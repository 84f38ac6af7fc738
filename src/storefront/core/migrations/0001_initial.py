import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
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
                ("action", models.CharField(max_length=100)),
                ("category", models.CharField(max_length=50)),
                ("message", models.TextField(blank=True, default="")),
                ("actor_id", models.CharField(blank=True, max_length=255, null=True)),
                ("entity_id", models.CharField(blank=True, max_length=255, null=True)),
                ("old_values", models.JSONField(blank=True, default=None, null=True)),
                ("new_values", models.JSONField(blank=True, default=None, null=True)),
            ],
            options={
                "db_table": "audit_logs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["action", "-created_at"], name="audit_action_idx"
                    ),
                    models.Index(fields=["entity_id"], name="audit_entity_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SecurityIncident",
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
                ("incident_type", models.CharField(max_length=100)),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("critical", "Critical"),
                        ],
                        default="medium",
                        max_length=10,
                    ),
                ),
                ("description", models.TextField()),
                ("reference", models.CharField(blank=True, default="", max_length=255)),
                (
                    "expected_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "received_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                ("context", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "db_table": "security_incidents",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["incident_type", "-created_at"],
                        name="incident_type_created_idx",
                    ),
                ],
            },
        ),
    ]
