from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from pricing.models import SERVICE_TYPE_CHOICES

CREATED = "created"
PROCESSED = "processed"
IN_TRANSIT = "in_transit"
ARRIVED_AT_DESTINATION = "arrived_at_destination"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"
FAILED_DELIVERY = "failed_delivery"
RETURNED = "returned"
CANCELLED = "cancelled"

STATUS_CHOICES = [
    (CREATED, "Created"),
    (PROCESSED, "Processed"),
    (IN_TRANSIT, "In Transit"),
    (ARRIVED_AT_DESTINATION, "Arrived at Destination"),
    (OUT_FOR_DELIVERY, "Out for Delivery"),
    (DELIVERED, "Delivered"),
    (FAILED_DELIVERY, "Failed Delivery"),
    (RETURNED, "Returned"),
    (CANCELLED, "Cancelled"),
]

PAYMENT_TYPE_CHOICES = [
    ("CASH", "Cash"),
    ("COD", "Cash on Delivery"),
    ("CAD", "Cash after Delivery"),
    ("credit", "Credit"),
    ("prepaid", "Prepaid"),
]


class ShipmentOrder(models.Model):
    waybill_no = models.CharField(max_length=20, unique=True)
    branch = models.ForeignKey("organizations.Branch", on_delete=models.PROTECT, related_name="shipment_orders")
    origin_branch = models.ForeignKey("organizations.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="+")
    destination_branch = models.ForeignKey("organizations.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="+")

    sender_name = models.CharField(max_length=255)
    sender_phone = models.CharField(max_length=32, blank=True, default="")
    sender_address = models.TextField(blank=True, default="")
    receiver_name = models.CharField(max_length=255)
    receiver_phone = models.CharField(max_length=32, blank=True, default="")
    receiver_address = models.TextField(blank=True, default="")

    origin_province = models.CharField(max_length=128)
    origin_city = models.CharField(max_length=128)
    origin_district = models.CharField(max_length=128, blank=True, default="")
    destination_province = models.CharField(max_length=128)
    destination_city = models.CharField(max_length=128)
    destination_district = models.CharField(max_length=128, blank=True, default="")

    service_type = models.CharField(max_length=16, choices=SERVICE_TYPE_CHOICES, default="regular")
    payment_type = models.CharField(max_length=16, choices=PAYMENT_TYPE_CHOICES, default="CASH")
    customer_type = models.CharField(max_length=16, default="regular")

    total_items = models.PositiveIntegerField(default=0)
    total_weight = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal("0"))
    volumetric_weight = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0"))
    chargeable_weight = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0"))
    distance_km = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))

    base_rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    additional_services = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    tax = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    insurance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    price_breakdown = models.JSONField(default=dict, blank=True)
    pricing_rule = models.ForeignKey("pricing.PricingRule", null=True, blank=True, on_delete=models.PROTECT, related_name="shipment_orders")
    discount_code = models.CharField(max_length=32, blank=True, default="")

    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=CREATED)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["branch", "-created_at"], name="shipment_branch_created_idx"),
            models.Index(fields=["status"], name="shipment_status_idx"),
        ]

    def __str__(self):
        return self.waybill_no

    def delete(self, *args, **kwargs):
        raise ValidationError("Shipment orders cannot be deleted; cancel them instead.")


class ShipmentItem(models.Model):
    UNIT_CHOICES = [("cm", "cm"), ("inch", "inch")]

    order = models.ForeignKey(ShipmentOrder, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=255, blank=True, default="")
    weight = models.DecimalField(max_digits=12, decimal_places=3)
    quantity = models.PositiveIntegerField(default=1)
    length = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    width = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    height = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    unit = models.CharField(max_length=8, choices=UNIT_CHOICES, default="cm")
    value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))


class StatusHistory(models.Model):
    order = models.ForeignKey(ShipmentOrder, on_delete=models.CASCADE, related_name="status_history")
    status = models.CharField(max_length=32, choices=STATUS_CHOICES)
    timestamp = models.DateTimeField(default=timezone.now)
    location = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "status history"

    def __str__(self):
        return f"{self.order_id} {self.status} @ {self.timestamp:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            raise ValidationError("Status history entries are append-only and cannot be modified.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Status history entries cannot be deleted.")


class WaybillSequence(models.Model):
    """Last number issued for one SM + YYMMDD + branch prefix; locked while a waybill is assigned."""
    prefix = models.CharField(max_length=16, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.prefix} #{self.last_value}"
