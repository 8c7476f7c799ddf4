from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.errors import ValidationError
from core.utils import ZERO, d, d_or_none

CM_PER_INCH = Decimal("2.54")


def _aware(val) -> Optional[datetime]:
    if val is None or val == "":
        return None
    dt = val if isinstance(val, datetime) else parse_datetime(str(val))
    if dt is None:
        raise ValidationError(f"Invalid datetime: {val!r}")
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def _iso(val: Optional[datetime]) -> Optional[str]:
    return val.isoformat() if val is not None else None


@dataclass
class Dimensions:
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None
    unit: str = "cm"

    @property
    def is_complete(self) -> bool:
        return self.length is not None and self.width is not None and self.height is not None

    def volume_cm3(self) -> Decimal:
        if not self.is_complete:
            return ZERO
        volume = self.length * self.width * self.height
        if self.unit == "inch":
            volume = volume * CM_PER_INCH ** 3
        return volume


@dataclass
class Item:
    weight: Decimal
    quantity: int = 1
    dimensions: Optional[Dimensions] = None
    value: Decimal = ZERO
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        dims = data.get("dimensions") or None
        dimensions = None
        if dims:
            dimensions = Dimensions(
                length=d_or_none(dims.get("length")),
                width=d_or_none(dims.get("width")),
                height=d_or_none(dims.get("height")),
                unit=dims.get("unit") or "cm",
            )
        return cls(
            weight=d(data.get("weight", 0)),
            quantity=int(data.get("quantity", 1)),
            dimensions=dimensions,
            value=d(data.get("value") or 0),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Tier:
    min_bound: Decimal
    max_bound: Optional[Decimal] = None
    per_unit_price: Decimal = ZERO
    flat_price: Optional[Decimal] = None

    def covers(self, value: Decimal) -> bool:
        return self.min_bound <= value and (self.max_bound is None or value <= self.max_bound)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tier":
        return cls(
            min_bound=d(data.get("min_bound", 0)),
            max_bound=d_or_none(data.get("max_bound")),
            per_unit_price=d(data.get("per_unit_price") or 0),
            flat_price=d_or_none(data.get("flat_price")),
        )


@dataclass
class ServiceSelection:
    service_code: str
    price: Decimal
    is_percentage: bool = False
    service_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceSelection":
        return cls(
            service_code=data["service_code"],
            price=d(data.get("price", 0)),
            is_percentage=bool(data.get("is_percentage", False)),
            service_name=data.get("service_name") or "",
        )


@dataclass
class DiscountRule:
    name: str
    discount_type: str  # percentage | fixed | free_service
    value: Decimal = ZERO
    code: Optional[str] = None
    service_code: Optional[str] = None  # surcharge waived by free_service
    min_order_value: Decimal = ZERO
    max_discount_amount: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscountRule":
        return cls(
            name=data.get("name") or data.get("code") or "",
            discount_type=data.get("discount_type", "percentage"),
            value=d(data.get("value") or 0),
            code=data.get("code"),
            service_code=data.get("service_code"),
            min_order_value=d(data.get("min_order_value") or 0),
            max_discount_amount=d_or_none(data.get("max_discount_amount")),
            start_date=_aware(data.get("start_date")),
            end_date=_aware(data.get("end_date")),
            usage_limit=data.get("usage_limit"),
            usage_count=int(data.get("usage_count") or 0),
            is_active=bool(data.get("is_active", True)),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "discount_type": self.discount_type,
            "value": str(self.value),
            "code": self.code,
            "service_code": self.service_code,
            "min_order_value": str(self.min_order_value),
            "max_discount_amount": str(self.max_discount_amount) if self.max_discount_amount is not None else None,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "usage_limit": self.usage_limit,
            "usage_count": self.usage_count,
            "is_active": self.is_active,
        }


@dataclass
class SurchargeLine:
    code: str
    name: str
    amount: Decimal
    is_percentage: bool = False
    waived: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "amount": str(self.amount),
            "is_percentage": self.is_percentage,
            "waived": self.waived,
        }


@dataclass
class PriceBreakdown:
    base_price: Decimal
    surcharges: List[SurchargeLine] = field(default_factory=list)
    surcharge_total: Decimal = ZERO
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    discounted_subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    insurance: Decimal = ZERO
    total: Decimal = ZERO
    applied_discount: Optional[str] = None
    skipped: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "base_price": str(self.base_price),
            "surcharges": [s.as_dict() for s in self.surcharges],
            "surcharge_total": str(self.surcharge_total),
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "discounted_subtotal": str(self.discounted_subtotal),
            "tax": str(self.tax),
            "insurance": str(self.insurance),
            "total": str(self.total),
            "applied_discount": self.applied_discount,
            "skipped": list(self.skipped),
        }


@dataclass
class WeightSummary:
    actual: Decimal
    volumetric: Decimal
    chargeable: Decimal

    def as_dict(self) -> Dict[str, str]:
        return {
            "actual_weight": str(self.actual),
            "volumetric_weight": str(self.volumetric),
            "chargeable_weight": str(self.chargeable),
        }


@dataclass
class Coordinates:
    latitude: Decimal
    longitude: Decimal


@dataclass
class PriceRequest:
    """Everything needed to price a shipment against a pricing rule."""
    items: List[Item]
    service_type: str = "regular"
    origin_area: Dict[str, str] = field(default_factory=dict)
    destination_area: Dict[str, str] = field(default_factory=dict)
    customer_type: str = "regular"
    special_services: List[str] = field(default_factory=list)
    discount_code: Optional[str] = None
    distance_km: Optional[Decimal] = None
    origin_coordinates: Optional[Coordinates] = None
    destination_coordinates: Optional[Coordinates] = None
    pricing_rule_code: Optional[str] = None
    branch_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceRequest":
        def _coords(val):
            if not val:
                return None
            return Coordinates(latitude=d(val["latitude"]), longitude=d(val["longitude"]))

        return cls(
            items=[Item.from_dict(i) for i in data.get("items") or []],
            service_type=data.get("service_type") or "regular",
            origin_area=dict(data.get("origin_area") or {}),
            destination_area=dict(data.get("destination_area") or {}),
            customer_type=data.get("customer_type") or "regular",
            special_services=list(data.get("special_services") or []),
            discount_code=data.get("discount_code") or None,
            distance_km=d_or_none(data.get("distance_km")),
            origin_coordinates=_coords(data.get("origin_coordinates")),
            destination_coordinates=_coords(data.get("destination_coordinates")),
            pricing_rule_code=data.get("pricing_rule_code") or None,
            branch_id=data.get("branch_id"),
        )


@dataclass
class Quote:
    weights: WeightSummary
    breakdown: PriceBreakdown
    base_rate: Decimal
    distance_km: Decimal = ZERO
    pricing_rule_id: Optional[int] = None
    pricing_rule_code: str = ""
    pricing_rule_name: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            **self.weights.as_dict(),
            "distance_km": str(self.distance_km),
            "base_rate": str(self.base_rate),
            "breakdown": self.breakdown.as_dict(),
            "pricing_rule": {
                "id": self.pricing_rule_id,
                "code": self.pricing_rule_code,
                "name": self.pricing_rule_name,
            },
            "meta": dict(self.meta),
        }
