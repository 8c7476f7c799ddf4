from __future__ import annotations

import logging

from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import CalculatePriceRequestSerializer
from .services.pricing_service import calculate_price

logger = logging.getLogger(__name__)


class CalculatePriceView(views.APIView):
    """
    Quote a shipment without persisting anything.

    Domain errors (no rule, no tier, expired discount) propagate to
    `core.exception_handler` and become 4xx responses.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = CalculatePriceRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = calculate_price(ser.to_request())
        logger.info(f"Quoted {quote.breakdown.total} on rule {quote.pricing_rule_code} for user {request.user.pk}")
        return Response({"success": True, "data": quote.as_dict()}, status=status.HTTP_200_OK)
