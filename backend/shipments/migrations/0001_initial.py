from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


STATUS_CHOICES = [
    ("created", "Created"),
    ("processed", "Processed"),
    ("in_transit", "In Transit"),
    ("arrived_at_destination", "Arrived at Destination"),
    ("out_for_delivery", "Out for Delivery"),
    ("delivered", "Delivered"),
    ("failed_delivery", "Failed Delivery"),
    ("returned", "Returned"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("organizations", "0001_initial"),
        ("pricing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ShipmentOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("waybill_no", models.CharField(max_length=20, unique=True)),
                ("sender_name", models.CharField(max_length=255)),
                ("sender_phone", models.CharField(blank=True, default="", max_length=32)),
                ("sender_address", models.TextField(blank=True, default="")),
                ("receiver_name", models.CharField(max_length=255)),
                ("receiver_phone", models.CharField(blank=True, default="", max_length=32)),
                ("receiver_address", models.TextField(blank=True, default="")),
                ("origin_province", models.CharField(max_length=128)),
                ("origin_city", models.CharField(max_length=128)),
                ("origin_district", models.CharField(blank=True, default="", max_length=128)),
                ("destination_province", models.CharField(max_length=128)),
                ("destination_city", models.CharField(max_length=128)),
                ("destination_district", models.CharField(blank=True, default="", max_length=128)),
                (
                    "service_type",
                    models.CharField(
                        choices=[
                            ("regular", "Regular"),
                            ("express", "Express"),
                            ("same_day", "Same Day"),
                            ("next_day", "Next Day"),
                            ("economy", "Economy"),
                        ],
                        default="regular",
                        max_length=16,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("COD", "Cash on Delivery"),
                            ("CAD", "Cash after Delivery"),
                            ("credit", "Credit"),
                            ("prepaid", "Prepaid"),
                        ],
                        default="CASH",
                        max_length=16,
                    ),
                ),
                ("customer_type", models.CharField(default="regular", max_length=16)),
                ("total_items", models.PositiveIntegerField(default=0)),
                ("total_weight", models.DecimalField(decimal_places=3, default=Decimal("0"), max_digits=12)),
                ("volumetric_weight", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14)),
                ("chargeable_weight", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14)),
                ("distance_km", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("base_rate", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("additional_services", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("discount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("tax", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("insurance", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("price_breakdown", models.JSONField(blank=True, default=dict)),
                ("discount_code", models.CharField(blank=True, default="", max_length=32)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="created", max_length=32)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shipment_orders",
                        to="organizations.branch",
                    ),
                ),
                (
                    "origin_branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="organizations.branch",
                    ),
                ),
                (
                    "destination_branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="organizations.branch",
                    ),
                ),
                (
                    "pricing_rule",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shipment_orders",
                        to="pricing.pricingrule",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["branch", "-created_at"], name="shipment_branch_created_idx"),
                    models.Index(fields=["status"], name="shipment_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ShipmentItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("weight", models.DecimalField(decimal_places=3, max_digits=12)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("length", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("width", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("height", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("unit", models.CharField(choices=[("cm", "cm"), ("inch", "inch")], default="cm", max_length=8)),
                ("value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="shipments.shipmentorder",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="StatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=32)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="shipments.shipmentorder",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["timestamp", "id"], "verbose_name_plural": "status history"},
        ),
    ]
