from rest_framework import serializers

from organizations.models import Branch
from pricing.serializers import CalculatePriceRequestSerializer

from .models import PAYMENT_TYPE_CHOICES, STATUS_CHOICES, ShipmentItem, ShipmentOrder, StatusHistory


class ShipmentOrderCreateSerializer(CalculatePriceRequestSerializer):
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all())
    origin_branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), required=False, allow_null=True)
    destination_branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), required=False, allow_null=True)
    sender_name = serializers.CharField(max_length=255)
    sender_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    sender_address = serializers.CharField(required=False, allow_blank=True, default="")
    receiver_name = serializers.CharField(max_length=255)
    receiver_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    receiver_address = serializers.CharField(required=False, allow_blank=True, default="")
    payment_type = serializers.ChoiceField(choices=PAYMENT_TYPE_CHOICES, default="CASH")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ShipmentItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShipmentItem
        fields = ["description", "weight", "quantity", "length", "width", "height", "unit", "value"]


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = StatusHistory
        fields = ["status", "timestamp", "location", "notes", "user"]


class ShipmentOrderSerializer(serializers.ModelSerializer):
    items = ShipmentItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = ShipmentOrder
        fields = [
            "id",
            "waybill_no",
            "branch",
            "origin_branch",
            "destination_branch",
            "sender_name",
            "receiver_name",
            "service_type",
            "payment_type",
            "total_items",
            "total_weight",
            "volumetric_weight",
            "chargeable_weight",
            "base_rate",
            "additional_services",
            "discount",
            "tax",
            "insurance",
            "total_amount",
            "price_breakdown",
            "pricing_rule",
            "status",
            "items",
            "status_history",
            "created_at",
        ]
        read_only_fields = fields


class StatusTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
