"""
Surcharge, discount, tax and insurance application against a base price.

Order of operations:
  1. special services are added to the base price (percentage services are
     computed against the base price, flat ones add their price); each line
     is rounded to 0.01 and the surcharge total is the sum of those lines;
  2. a valid discount reduces the post-surcharge subtotal, or waives one
     surcharge line when it is a free-service discount;
  3. tax and insurance percentages apply to the discounted subtotal.

Every intermediate figure is kept on the returned PriceBreakdown.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from django.utils import timezone

from core.errors import ExpiredError, LimitExceededError, ValidationError
from core.utils import HUNDRED, ZERO, d, money, pct_of

from ..dataclasses import DiscountRule, PriceBreakdown, ServiceSelection, SurchargeLine

logger = logging.getLogger(__name__)

PERCENTAGE = "percentage"
FIXED = "fixed"
FREE_SERVICE = "free_service"
DISCOUNT_TYPES = (PERCENTAGE, FIXED, FREE_SERVICE)


def check_discount_window(discount: DiscountRule, at: datetime) -> None:
    """Raise ExpiredError / LimitExceededError when the discount cannot be used at `at`."""
    if discount.start_date is not None and at < discount.start_date:
        raise ExpiredError(
            f"Discount {discount.code or discount.name} is not valid before {discount.start_date.isoformat()}",
            {"discount": discount.code or discount.name, "start_date": discount.start_date.isoformat()},
        )
    if discount.end_date is not None and at > discount.end_date:
        raise ExpiredError(
            f"Discount {discount.code or discount.name} expired on {discount.end_date.isoformat()}",
            {"discount": discount.code or discount.name, "end_date": discount.end_date.isoformat()},
        )
    if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
        raise LimitExceededError(
            f"Discount {discount.code or discount.name} reached its usage limit ({discount.usage_limit})",
            {"discount": discount.code or discount.name, "usage_limit": discount.usage_limit},
        )


def build_surcharges(base_price: Decimal, special_services: Sequence[ServiceSelection]) -> List[SurchargeLine]:
    lines = []
    for svc in special_services:
        if svc.price < ZERO:
            raise ValidationError(f"Special service {svc.service_code}: price must be >= 0")
        amount = money(pct_of(base_price, svc.price) if svc.is_percentage else svc.price)
        lines.append(
            SurchargeLine(
                code=svc.service_code,
                name=svc.service_name or svc.service_code,
                amount=amount,
                is_percentage=svc.is_percentage,
            )
        )
    return lines


def validate_discount(discount: DiscountRule) -> None:
    label = discount.code or discount.name
    value = d(discount.value)
    if value < ZERO:
        raise ValidationError(f"Discount {label}: value must be >= 0, got {value}", {"discount": label, "value": str(value)})
    if discount.discount_type == PERCENTAGE and value > HUNDRED:
        raise ValidationError(
            f"Discount {label}: percentage must be <= 100, got {value}", {"discount": label, "value": str(value)}
        )
    if discount.max_discount_amount is not None and d(discount.max_discount_amount) < ZERO:
        raise ValidationError(f"Discount {label}: max_discount_amount must be >= 0", {"discount": label})
    if d(discount.min_order_value) < ZERO:
        raise ValidationError(f"Discount {label}: min_order_value must be >= 0", {"discount": label})


def discount_amount(discount: DiscountRule, subtotal: Decimal) -> Decimal:
    """Monetary reduction of a percentage or fixed discount against `subtotal`."""
    validate_discount(discount)
    if discount.discount_type == PERCENTAGE:
        amount = pct_of(subtotal, discount.value)
        if discount.max_discount_amount is not None and amount > discount.max_discount_amount:
            amount = discount.max_discount_amount
        return amount
    if discount.discount_type == FIXED:
        return min(discount.value, subtotal)
    return ZERO


def apply_adjustments(
    base_price,
    special_services: Sequence[ServiceSelection],
    discount: Optional[DiscountRule],
    *,
    tax_pct=ZERO,
    insurance_pct=ZERO,
    at: Optional[datetime] = None,
) -> PriceBreakdown:
    base_price = d(base_price)
    if base_price < ZERO:
        raise ValidationError(f"Base price must be >= 0, got {base_price}")
    base_price = money(base_price)
    at = at or timezone.now()

    surcharges = build_surcharges(base_price, special_services)
    skipped = []
    applied = None
    reduction = ZERO

    if discount is not None:
        if discount.discount_type not in DISCOUNT_TYPES:
            raise ValidationError(f"Unknown discount type {discount.discount_type!r}")
        validate_discount(discount)
        label = discount.code or discount.name
        if not discount.is_active:
            skipped.append({"discount": label, "reason": "inactive"})
        elif base_price < discount.min_order_value:
            skipped.append({"discount": label, "reason": "min_order_value"})
        else:
            check_discount_window(discount, at)
            applied = label
            if discount.discount_type == FREE_SERVICE:
                waived = [s for s in surcharges if s.code == discount.service_code]
                if not waived:
                    skipped.append({"discount": label, "reason": "service_not_selected"})
                    applied = None
                for line in waived:
                    line.waived = True
                    line.amount = money(ZERO)
        if skipped:
            logger.info(f"Discount {label} skipped: {skipped[-1]['reason']}")

    surcharge_total = sum((s.amount for s in surcharges), ZERO)
    subtotal = base_price + surcharge_total
    if applied is not None:
        reduction = money(discount_amount(discount, subtotal))
    discounted = subtotal - reduction
    tax = pct_of(discounted, tax_pct)
    insurance = pct_of(discounted, insurance_pct)

    return PriceBreakdown(
        base_price=money(base_price),
        surcharges=surcharges,
        surcharge_total=money(surcharge_total),
        subtotal=money(subtotal),
        discount=money(reduction),
        discounted_subtotal=money(discounted),
        tax=money(tax),
        insurance=money(insurance),
        total=money(discounted + tax + insurance),
        applied_discount=applied,
        skipped=skipped,
    )
