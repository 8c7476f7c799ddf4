from __future__ import annotations

from django.shortcuts import get_object_or_404

from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import ShipmentOrder
from .serializers import (
    CancelSerializer,
    ShipmentOrderCreateSerializer,
    ShipmentOrderSerializer,
    StatusTransitionSerializer,
)
from .services import cancel_shipment_order, create_shipment_order, transition_status


def _order_response(order, http_status=status.HTTP_200_OK):
    order = ShipmentOrder.objects.prefetch_related("items", "status_history").get(pk=order.pk)
    return Response({"success": True, "data": ShipmentOrderSerializer(order).data}, status=http_status)


class ShipmentOrderCreateView(views.APIView):
    """Price and create a shipment order in one step."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = ShipmentOrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = create_shipment_order(ser.validated_data, user=request.user)
        return _order_response(order, status.HTTP_201_CREATED)


class ShipmentStatusView(views.APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        order = get_object_or_404(ShipmentOrder, pk=pk)
        ser = StatusTransitionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = transition_status(
            order,
            ser.validated_data["status"],
            user=request.user,
            location=ser.validated_data["location"],
            notes=ser.validated_data["notes"],
        )
        return _order_response(order)


class ShipmentCancelView(views.APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        order = get_object_or_404(ShipmentOrder, pk=pk)
        ser = CancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = cancel_shipment_order(order, user=request.user, notes=ser.validated_data["notes"])
        return _order_response(order)
