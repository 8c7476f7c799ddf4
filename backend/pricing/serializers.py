from rest_framework import serializers

from .dataclasses import PriceRequest
from .models import CUSTOMER_TYPE_CHOICES, SERVICE_TYPE_CHOICES


class DimensionsSerializer(serializers.Serializer):
    length = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0, required=False, allow_null=True)
    width = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0, required=False, allow_null=True)
    height = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0, required=False, allow_null=True)
    unit = serializers.ChoiceField(choices=[("cm", "cm"), ("inch", "inch")], default="cm")


class ItemSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    weight = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0)
    quantity = serializers.IntegerField(min_value=1, default=1)
    dimensions = DimensionsSerializer(required=False, allow_null=True)
    value = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False, default=0)


class AreaSerializer(serializers.Serializer):
    province = serializers.CharField(max_length=128)
    city = serializers.CharField(max_length=128)
    district = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")


class CoordinatesSerializer(serializers.Serializer):
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)


class CalculatePriceRequestSerializer(serializers.Serializer):
    items = ItemSerializer(many=True, allow_empty=False)
    service_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES, default="regular")
    origin_area = AreaSerializer()
    destination_area = AreaSerializer()
    customer_type = serializers.ChoiceField(choices=CUSTOMER_TYPE_CHOICES, default="regular")
    special_services = serializers.ListField(child=serializers.CharField(max_length=32), required=False, default=list)
    discount_code = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    distance_km = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    origin_coordinates = CoordinatesSerializer(required=False, allow_null=True)
    destination_coordinates = CoordinatesSerializer(required=False, allow_null=True)
    pricing_rule_code = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    branch = serializers.IntegerField(required=False, allow_null=True)

    def to_request(self) -> PriceRequest:
        v = self.validated_data
        return PriceRequest.from_dict({**v, "branch_id": v.get("branch")})
