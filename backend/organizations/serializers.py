from rest_framework import serializers

from .models import Division, Position


class DivisionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Division
        fields = ["id", "code", "name", "description", "branch", "parent", "level", "head", "status"]
        read_only_fields = ("level",)


class PositionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Position
        fields = ["id", "code", "title", "description", "division", "parent", "level", "responsibilities", "status"]
        read_only_fields = ("level",)


class ReparentSerializer(serializers.Serializer):
    parent = serializers.IntegerField(allow_null=True)
