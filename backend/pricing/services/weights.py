from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from core.errors import ValidationError
from core.utils import FOURPLACES, ZERO, d

from ..dataclasses import Item, WeightSummary

DEFAULT_VOLUMETRIC_DIVISOR = Decimal("5000")  # cm3 per kg


def _check_item(item: Item, idx: int) -> None:
    if item.weight < ZERO:
        raise ValidationError(f"Item {idx}: weight must be >= 0", {"index": idx})
    if item.quantity < 1:
        raise ValidationError(f"Item {idx}: quantity must be >= 1", {"index": idx})
    dims = item.dimensions
    if dims is not None:
        for name in ("length", "width", "height"):
            val = getattr(dims, name)
            if val is not None and val < ZERO:
                raise ValidationError(f"Item {idx}: {name} must be >= 0", {"index": idx})
        if dims.unit not in ("cm", "inch"):
            raise ValidationError(f"Item {idx}: unknown dimension unit {dims.unit!r}", {"index": idx})


def volumetric_weight(item: Item, divisor=DEFAULT_VOLUMETRIC_DIVISOR) -> Decimal:
    """(length * width * height) / divisor * quantity; zero when any dimension is missing."""
    divisor = d(divisor)
    if divisor <= ZERO:
        raise ValidationError("Volumetric divisor must be > 0")
    if item.dimensions is None:
        return ZERO
    volume = item.dimensions.volume_cm3()
    return volume / divisor * item.quantity


def actual_weight(items: Iterable[Item]) -> Decimal:
    return sum((item.weight * item.quantity for item in items), ZERO)


def weigh(items: Iterable[Item], divisor=DEFAULT_VOLUMETRIC_DIVISOR) -> WeightSummary:
    """
    Actual, volumetric and chargeable weight for a set of items.

    Quoting and order creation both go through here so the two paths always
    agree for the same items.
    """
    items: List[Item] = list(items)
    for idx, item in enumerate(items):
        _check_item(item, idx)
    actual = actual_weight(items)
    volumetric = sum((volumetric_weight(item, divisor) for item in items), ZERO).quantize(FOURPLACES)
    return WeightSummary(actual=actual, volumetric=volumetric, chargeable=max(actual, volumetric))


def chargeable_weight(items: Iterable[Item], divisor=DEFAULT_VOLUMETRIC_DIVISOR) -> Decimal:
    """The greater of total actual weight and total volumetric weight."""
    return weigh(items, divisor).chargeable
