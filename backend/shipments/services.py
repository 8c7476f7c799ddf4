"""
Shipment order lifecycle: creation through the pricing path, waybill
numbering and the status state machine.

Every status change appends a StatusHistory row and updates
`ShipmentOrder.status` inside one transaction, with the order row locked,
so the order's status always equals its newest history entry.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from core.errors import InvalidTransitionError, ValidationError
from organizations.models import Branch
from pricing.dataclasses import PriceRequest
from pricing.models import PricingRule
from pricing.services.pricing_service import calculate_price, record_discount_usage

from .models import (
    ARRIVED_AT_DESTINATION,
    CANCELLED,
    CREATED,
    DELIVERED,
    FAILED_DELIVERY,
    IN_TRANSIT,
    OUT_FOR_DELIVERY,
    PROCESSED,
    RETURNED,
    STATUS_CHOICES,
    ShipmentItem,
    ShipmentOrder,
    StatusHistory,
    WaybillSequence,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    CREATED: {PROCESSED, CANCELLED},
    PROCESSED: {IN_TRANSIT, CANCELLED},
    IN_TRANSIT: {ARRIVED_AT_DESTINATION},
    ARRIVED_AT_DESTINATION: {OUT_FOR_DELIVERY},
    OUT_FOR_DELIVERY: {DELIVERED, FAILED_DELIVERY},
    FAILED_DELIVERY: {OUT_FOR_DELIVERY, RETURNED},
    DELIVERED: set(),
    RETURNED: set(),
    CANCELLED: set(),
}
KNOWN_STATUSES = {code for code, _ in STATUS_CHOICES}


@transaction.atomic
def generate_waybill_no(branch: Branch, at: Optional[datetime] = None) -> str:
    """
    SM + YYMMDD + two-letter branch prefix + daily sequence, zero-padded to
    four digits. Branches sharing the first two letters of their code share
    one counter row, which stays locked until the surrounding transaction
    commits.
    """
    at = timezone.localtime(at or timezone.now())
    branch_prefix = (branch.code or "XX")[:2].upper()
    prefix = f"SM{at:%y%m%d}{branch_prefix}"
    WaybillSequence.objects.get_or_create(prefix=prefix)
    counter = WaybillSequence.objects.select_for_update().get(prefix=prefix)
    counter.last_value += 1
    counter.save(update_fields=["last_value"])
    return f"{prefix}{counter.last_value:04d}"


def check_transition(current: str, new: str) -> None:
    if new not in KNOWN_STATUSES:
        raise ValidationError(f"Unknown shipment status {new!r}", {"status": new})
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if new not in allowed:
        raise InvalidTransitionError(
            f"Cannot move shipment from {current} to {new}",
            {"from": current, "to": new, "allowed": sorted(allowed)},
        )


def _area(data: Dict[str, Any], prefix: str) -> Dict[str, str]:
    area = data.get(f"{prefix}_area") or {}
    return {
        "province": area.get("province", ""),
        "city": area.get("city", ""),
        "district": area.get("district", "") or "",
    }


@transaction.atomic
def create_shipment_order(data: Dict[str, Any], user=None, at: Optional[datetime] = None) -> ShipmentOrder:
    """
    Price and persist a shipment order with its items and the initial
    `created` history entry.

    `data` carries the same pricing keys the quote endpoint accepts (items,
    service_type, origin_area, destination_area, special_services, ...) plus
    the order details: branch, sender/receiver and payment_type.
    """
    at = at or timezone.now()
    branch = data["branch"]
    if not isinstance(branch, Branch):
        branch = Branch.objects.filter(pk=branch).first()
        if branch is None:
            raise ValidationError(f"Branch {data['branch']} not found", {"branch": data["branch"]})

    price_request = PriceRequest.from_dict({**data, "branch_id": branch.pk})
    quote = calculate_price(price_request, at=at)
    rule = PricingRule.objects.get(pk=quote.pricing_rule_id)
    breakdown = quote.breakdown
    if breakdown.applied_discount:
        record_discount_usage(rule, breakdown.applied_discount)

    origin, destination = _area(data, "origin"), _area(data, "destination")
    order = ShipmentOrder.objects.create(
        waybill_no=generate_waybill_no(branch, at),
        branch=branch,
        origin_branch=data.get("origin_branch"),
        destination_branch=data.get("destination_branch"),
        sender_name=data["sender_name"],
        sender_phone=data.get("sender_phone", ""),
        sender_address=data.get("sender_address", ""),
        receiver_name=data["receiver_name"],
        receiver_phone=data.get("receiver_phone", ""),
        receiver_address=data.get("receiver_address", ""),
        origin_province=origin["province"],
        origin_city=origin["city"],
        origin_district=origin["district"],
        destination_province=destination["province"],
        destination_city=destination["city"],
        destination_district=destination["district"],
        service_type=price_request.service_type,
        payment_type=data.get("payment_type") or "CASH",
        customer_type=price_request.customer_type,
        total_items=sum(i.quantity for i in price_request.items),
        total_weight=quote.weights.actual,
        volumetric_weight=quote.weights.volumetric,
        chargeable_weight=quote.weights.chargeable,
        distance_km=quote.distance_km,
        base_rate=breakdown.base_price,
        additional_services=breakdown.surcharge_total,
        discount=breakdown.discount,
        tax=breakdown.tax,
        insurance=breakdown.insurance,
        total_amount=breakdown.total,
        price_breakdown=quote.as_dict(),
        pricing_rule=rule,
        discount_code=price_request.discount_code or "",
        status=CREATED,
        notes=data.get("notes", ""),
        created_by=user,
    )
    ShipmentItem.objects.bulk_create(
        [
            ShipmentItem(
                order=order,
                description=item.description,
                weight=item.weight,
                quantity=item.quantity,
                length=item.dimensions.length if item.dimensions else None,
                width=item.dimensions.width if item.dimensions else None,
                height=item.dimensions.height if item.dimensions else None,
                unit=item.dimensions.unit if item.dimensions else "cm",
                value=item.value,
            )
            for item in price_request.items
        ]
    )
    StatusHistory.objects.create(
        order=order,
        status=CREATED,
        timestamp=at,
        location=branch.name,
        notes="Shipment order created",
        user=user,
    )
    logger.info(f"Created shipment order {order.waybill_no} total {order.total_amount} on rule {rule.code}")
    return order


def transition_status(
    order: ShipmentOrder,
    status: str,
    user=None,
    location: str = "",
    notes: str = "",
    at: Optional[datetime] = None,
) -> ShipmentOrder:
    """Validate and apply a status change; returns the refreshed order."""
    with transaction.atomic():
        locked = ShipmentOrder.objects.select_for_update().get(pk=order.pk)
        check_transition(locked.status, status)
        timestamp = at or timezone.now()
        latest = StatusHistory.objects.filter(order=locked).order_by("-timestamp", "-id").first()
        if latest is not None and timestamp < latest.timestamp:
            raise ValidationError(
                f"Status timestamp {timestamp.isoformat()} is older than the latest entry ({latest.timestamp.isoformat()})",
                {"timestamp": timestamp.isoformat(), "latest": latest.timestamp.isoformat()},
            )
        StatusHistory.objects.create(
            order=locked,
            status=status,
            timestamp=timestamp,
            location=location or "",
            notes=notes or "",
            user=user,
        )
        previous = locked.status
        locked.status = status
        locked.save(update_fields=["status", "updated_at"])

    logger.info(f"Shipment {locked.waybill_no}: {previous} -> {status}")
    order.status = locked.status
    return locked


def cancel_shipment_order(order: ShipmentOrder, user=None, notes: str = "", at: Optional[datetime] = None) -> ShipmentOrder:
    """Soft cancel; orders are never physically deleted."""
    return transition_status(order, CANCELLED, user=user, notes=notes or "Shipment order cancelled", at=at)
