from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion

import pricing.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PricingRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("service_type", models.CharField(choices=[("regular", "Regular"), ("express", "Express"), ("same_day", "Same Day"), ("next_day", "Next Day"), ("economy", "Economy")], default="regular", max_length=16)),
                ("origin_province", models.CharField(max_length=128)),
                ("origin_city", models.CharField(max_length=128)),
                ("origin_district", models.CharField(blank=True, default="", max_length=128)),
                ("destination_province", models.CharField(max_length=128)),
                ("destination_city", models.CharField(max_length=128)),
                ("destination_district", models.CharField(blank=True, default="", max_length=128)),
                ("pricing_type", models.CharField(choices=[("weight", "Weight"), ("distance", "Distance"), ("flat", "Flat"), ("combined", "Combined")], default="weight", max_length=16)),
                ("base_price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("minimum_price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("tax_percentage", models.DecimalField(decimal_places=3, default=Decimal("11"), max_digits=6)),
                ("insurance_percentage", models.DecimalField(decimal_places=3, default=Decimal("0.2"), max_digits=6)),
                ("volumetric_divisor", models.PositiveIntegerField(default=5000)),
                ("effective_date", models.DateTimeField()),
                ("expiry_date", models.DateTimeField(blank=True, null=True)),
                ("priority", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("applicable_customer_types", models.JSONField(default=pricing.models.default_customer_types)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("branch", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="pricing_rules", to="organizations.branch")),
            ],
            options={
                "ordering": ["-priority", "code"],
                "indexes": [models.Index(fields=["service_type", "origin_city", "destination_city"], name="pricingrule_lane_idx")],
            },
        ),
        migrations.CreateModel(
            name="WeightTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("min_bound", models.DecimalField(decimal_places=3, max_digits=12)),
                ("max_bound", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("per_unit_price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("flat_price", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("rule", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="weight_tiers", to="pricing.pricingrule")),
            ],
            options={"ordering": ["min_bound"], "abstract": False},
        ),
        migrations.CreateModel(
            name="DistanceTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("min_bound", models.DecimalField(decimal_places=3, max_digits=12)),
                ("max_bound", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("per_unit_price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("flat_price", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("rule", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="distance_tiers", to="pricing.pricingrule")),
            ],
            options={"ordering": ["min_bound"], "abstract": False},
        ),
        migrations.CreateModel(
            name="SpecialService",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("service_code", models.CharField(max_length=32)),
                ("service_name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("is_percentage", models.BooleanField(default=False)),
                ("applicable_service_types", models.JSONField(default=pricing.models.default_service_types)),
                ("rule", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="special_services", to="pricing.pricingrule")),
            ],
            options={"unique_together": {("rule", "service_code")}},
        ),
        migrations.CreateModel(
            name="Discount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(blank=True, default="", max_length=32)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("discount_type", models.CharField(choices=[("percentage", "Percentage"), ("fixed", "Fixed"), ("free_service", "Free Service")], default="percentage", max_length=16)),
                ("value", models.DecimalField(decimal_places=2, max_digits=14)),
                ("service_code", models.CharField(blank=True, default="", max_length=32)),
                ("max_discount_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("min_order_value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("applicable_service_types", models.JSONField(default=pricing.models.default_service_types)),
                ("applicable_customer_types", models.JSONField(default=pricing.models.default_customer_types)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("rule", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="discounts", to="pricing.pricingrule")),
            ],
        ),
    ]
