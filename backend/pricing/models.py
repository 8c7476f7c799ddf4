from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from .dataclasses import DiscountRule, ServiceSelection, Tier

SERVICE_TYPE_CHOICES = [
    ("regular", "Regular"),
    ("express", "Express"),
    ("same_day", "Same Day"),
    ("next_day", "Next Day"),
    ("economy", "Economy"),
]
CUSTOMER_TYPE_CHOICES = [("regular", "Regular"), ("corporate", "Corporate"), ("vip", "VIP")]


def default_service_types():
    return [code for code, _ in SERVICE_TYPE_CHOICES]


def default_customer_types():
    return [code for code, _ in CUSTOMER_TYPE_CHOICES]


class PricingRule(models.Model):
    PRICING_TYPE_CHOICES = [
        ("weight", "Weight"),
        ("distance", "Distance"),
        ("flat", "Flat"),
        ("combined", "Combined"),
    ]

    # Left blank in the admin, a PR-YYYYMMDD-XXX code is generated on save.
    code = models.CharField(max_length=32, unique=True, blank=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    service_type = models.CharField(max_length=16, choices=SERVICE_TYPE_CHOICES, default="regular")
    origin_province = models.CharField(max_length=128)
    origin_city = models.CharField(max_length=128)
    origin_district = models.CharField(max_length=128, blank=True, default="")
    destination_province = models.CharField(max_length=128)
    destination_city = models.CharField(max_length=128)
    destination_district = models.CharField(max_length=128, blank=True, default="")
    pricing_type = models.CharField(max_length=16, choices=PRICING_TYPE_CHOICES, default="weight")
    base_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    minimum_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    tax_percentage = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("11"))
    insurance_percentage = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("0.2"))
    volumetric_divisor = models.PositiveIntegerField(default=5000)
    effective_date = models.DateTimeField()
    expiry_date = models.DateTimeField(blank=True, null=True)
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    branch = models.ForeignKey("organizations.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="pricing_rules")
    applicable_customer_types = models.JSONField(default=default_customer_types)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-priority", "code"]
        indexes = [
            models.Index(fields=["service_type", "origin_city", "destination_city"], name="pricingrule_lane_idx"),
        ]

    def __str__(self):
        return f"{self.code} ({self.name})"

    def weight_tier_list(self):
        return [t.as_tier() for t in self.weight_tiers.all()]

    def distance_tier_list(self):
        return [t.as_tier() for t in self.distance_tiers.all()]


class TierModel(models.Model):
    min_bound = models.DecimalField(max_digits=12, decimal_places=3)
    max_bound = models.DecimalField(max_digits=12, decimal_places=3, blank=True, null=True)
    per_unit_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    flat_price = models.DecimalField(max_digits=14, decimal_places=2, blank=True, null=True)

    class Meta:
        abstract = True
        ordering = ["min_bound"]

    def as_tier(self) -> Tier:
        return Tier(
            min_bound=self.min_bound,
            max_bound=self.max_bound,
            per_unit_price=self.per_unit_price,
            flat_price=self.flat_price,
        )


class WeightTier(TierModel):
    """Weight band in kg; per_unit_price is per kg."""
    rule = models.ForeignKey(PricingRule, on_delete=models.CASCADE, related_name="weight_tiers")


class DistanceTier(TierModel):
    """Distance band in km; per_unit_price is per km."""
    rule = models.ForeignKey(PricingRule, on_delete=models.CASCADE, related_name="distance_tiers")


class SpecialService(models.Model):
    rule = models.ForeignKey(PricingRule, on_delete=models.CASCADE, related_name="special_services")
    service_code = models.CharField(max_length=32)
    service_name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=14, decimal_places=2)
    is_percentage = models.BooleanField(default=False)
    applicable_service_types = models.JSONField(default=default_service_types)

    class Meta:
        unique_together = (("rule", "service_code"),)

    def as_selection(self) -> ServiceSelection:
        return ServiceSelection(
            service_code=self.service_code,
            service_name=self.service_name,
            price=self.price,
            is_percentage=self.is_percentage,
        )


class Discount(models.Model):
    DISCOUNT_TYPE_CHOICES = [
        ("percentage", "Percentage"),
        ("fixed", "Fixed"),
        ("free_service", "Free Service"),
    ]

    rule = models.ForeignKey(PricingRule, on_delete=models.CASCADE, related_name="discounts")
    code = models.CharField(max_length=32, blank=True, default="")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    discount_type = models.CharField(max_length=16, choices=DISCOUNT_TYPE_CHOICES, default="percentage")
    value = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    service_code = models.CharField(max_length=32, blank=True, default="")
    max_discount_amount = models.DecimalField(
        max_digits=14, decimal_places=2, blank=True, null=True, validators=[MinValueValidator(Decimal("0"))]
    )
    min_order_value = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0"), validators=[MinValueValidator(Decimal("0"))]
    )
    applicable_service_types = models.JSONField(default=default_service_types)
    applicable_customer_types = models.JSONField(default=default_customer_types)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(blank=True, null=True)
    usage_limit = models.PositiveIntegerField(blank=True, null=True)
    usage_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.code or self.name

    def clean(self):
        super().clean()
        if self.discount_type == "percentage" and self.value is not None and self.value > 100:
            raise ValidationError({"value": "A percentage discount cannot exceed 100."})
        if self.discount_type == "free_service" and not self.service_code:
            raise ValidationError({"service_code": "A free service discount needs the service code it waives."})

    def as_rule(self) -> DiscountRule:
        return DiscountRule(
            name=self.name,
            discount_type=self.discount_type,
            value=self.value,
            code=self.code or None,
            service_code=self.service_code or None,
            min_order_value=self.min_order_value,
            max_discount_amount=self.max_discount_amount,
            start_date=self.start_date,
            end_date=self.end_date,
            usage_limit=self.usage_limit,
            usage_count=self.usage_count,
            is_active=self.is_active,
        )
