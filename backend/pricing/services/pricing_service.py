"""
Pricing service: picks the pricing rule for a shipment and runs the pure
pricing steps (chargeable weight, tier match, adjustments) against it.

Both the quote endpoint and shipment order creation call `calculate_price`,
so a quote and the final order price agree for identical input.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils.timezone import localtime, now

from core.errors import ExpiredError, LimitExceededError, NotFoundError, RuleNotFoundError, SamudraError, ValidationError
from core.utils import ZERO, d, money

from ..dataclasses import DiscountRule, PriceRequest, Quote, ServiceSelection
from ..models import Discount, PricingRule
from .adjustments import FIXED, apply_adjustments
from .geo import haversine_km
from .tiers import match_tier, tier_price, validate_tiers
from .weights import weigh

logger = logging.getLogger(__name__)

DISTANCE_PRICING_TYPES = {"distance", "combined"}


def pricing_default(key: str) -> Decimal:
    defaults = getattr(settings, "SAMUDRA_PRICING", {})
    fallback = {"VOLUMETRIC_DIVISOR": "5000", "TAX_PERCENTAGE": "11", "INSURANCE_PERCENTAGE": "0.2"}
    return d(defaults.get(key, fallback[key]))


# ------------------------- Rule selection -------------------------

def find_applicable_rules(
    service_type: str,
    origin_area: Dict[str, str],
    destination_area: Dict[str, str],
    customer_type: str = "regular",
    branch_id: Optional[int] = None,
    at: Optional[datetime] = None,
) -> List[PricingRule]:
    """Active, effective rules for the lane, highest priority first."""
    at = at or now()
    qs = (
        PricingRule.objects
        .filter(service_type=service_type, is_active=True, effective_date__lte=at)
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=at))
    )
    for prefix, area in (("origin", origin_area or {}), ("destination", destination_area or {})):
        if area.get("province"):
            qs = qs.filter(**{f"{prefix}_province__iexact": area["province"]})
        if area.get("city"):
            qs = qs.filter(**{f"{prefix}_city__iexact": area["city"]})
        if area.get("district"):
            qs = qs.filter(**{f"{prefix}_district__iexact": area["district"]})
    if branch_id is not None:
        qs = qs.filter(Q(branch_id=branch_id) | Q(branch__isnull=True))

    # JSON containment lookups are not portable across backends; filter here.
    rules = [r for r in qs.order_by("-priority", "code") if customer_type in (r.applicable_customer_types or [])]
    logger.debug(f"{len(rules)} pricing rule(s) apply to {service_type} {origin_area} -> {destination_area}")
    return rules


def get_rule(code: str) -> PricingRule:
    rule = PricingRule.objects.filter(code=code).first()
    if rule is None:
        raise RuleNotFoundError(f"Pricing rule {code} not found", {"code": code})
    return rule


def check_rule_applies(rule: PricingRule, request: PriceRequest, at: datetime) -> None:
    """An explicitly requested rule must pass the same filters as automatic selection."""
    if not rule.is_active:
        raise RuleNotFoundError(f"Pricing rule {rule.code} is inactive", {"code": rule.code, "reason": "inactive"})
    if rule.effective_date > at:
        raise ExpiredError(
            f"Pricing rule {rule.code} is not effective before {rule.effective_date.isoformat()}",
            {"code": rule.code, "effective_date": rule.effective_date.isoformat()},
        )
    if rule.expiry_date is not None and rule.expiry_date < at:
        raise ExpiredError(
            f"Pricing rule {rule.code} expired on {rule.expiry_date.isoformat()}",
            {"code": rule.code, "expiry_date": rule.expiry_date.isoformat()},
        )
    applicable = find_applicable_rules(
        request.service_type,
        request.origin_area,
        request.destination_area,
        request.customer_type,
        request.branch_id,
        at,
    )
    if rule.pk not in {r.pk for r in applicable}:
        raise RuleNotFoundError(
            f"Pricing rule {rule.code} does not apply to this shipment",
            {"code": rule.code, "reason": "not_applicable", "service_type": request.service_type},
        )


def select_rule(request: PriceRequest, at: Optional[datetime] = None) -> PricingRule:
    at = at or now()
    if request.pricing_rule_code:
        rule = get_rule(request.pricing_rule_code)
        check_rule_applies(rule, request, at)
        return rule
    rules = find_applicable_rules(
        request.service_type,
        request.origin_area,
        request.destination_area,
        request.customer_type,
        request.branch_id,
        at,
    )
    if not rules:
        raise RuleNotFoundError(
            "No applicable pricing rules found for this shipment",
            {
                "service_type": request.service_type,
                "origin_area": request.origin_area,
                "destination_area": request.destination_area,
            },
        )
    rule = rules[0]
    logger.info(f"Selected pricing rule {rule.code} (priority {rule.priority}) out of {len(rules)}")
    return rule


# ------------------------- Rule evaluation ------------------------

def resolve_distance(request: PriceRequest) -> Decimal:
    if request.distance_km is not None:
        distance = d(request.distance_km)
        if distance < ZERO:
            raise ValidationError(f"Distance must be >= 0, got {distance}")
        return distance
    if request.origin_coordinates and request.destination_coordinates:
        return haversine_km(request.origin_coordinates, request.destination_coordinates)
    return ZERO


def compute_base_rate(rule: PricingRule, chargeable_kg: Decimal, distance_km: Decimal) -> Tuple[Decimal, Dict]:
    """Base rate by pricing type, clamped to the rule's minimum price."""
    meta: Dict = {"pricing_type": rule.pricing_type}

    def _tiered(tiers, value, label):
        if not tiers:
            meta[f"{label}_tier"] = None
            return d(rule.base_price)
        tier = match_tier(tiers, value)
        meta[f"{label}_tier"] = {
            "min_bound": str(tier.min_bound),
            "max_bound": str(tier.max_bound) if tier.max_bound is not None else None,
        }
        return tier_price(tier, value)

    if rule.pricing_type == "weight":
        rate = _tiered(rule.weight_tier_list(), chargeable_kg, "weight")
    elif rule.pricing_type == "distance":
        rate = _tiered(rule.distance_tier_list(), distance_km, "distance")
    elif rule.pricing_type == "combined":
        rate = _tiered(rule.weight_tier_list(), chargeable_kg, "weight") + _tiered(
            rule.distance_tier_list(), distance_km, "distance"
        )
    else:
        rate = d(rule.base_price)

    if rate < rule.minimum_price:
        meta["minimum_price_applied"] = True
        rate = d(rule.minimum_price)
    return rate, meta


def select_special_services(
    rule: PricingRule, codes: Sequence[str], service_type: str
) -> Tuple[List[ServiceSelection], List[Dict[str, str]]]:
    by_code = {s.service_code: s for s in rule.special_services.all()}
    selected, skipped = [], []
    for code in codes or []:
        svc = by_code.get(code)
        if svc is None:
            skipped.append({"service": code, "reason": "unknown_service"})
        elif service_type not in (svc.applicable_service_types or []):
            skipped.append({"service": code, "reason": "not_applicable_to_service_type"})
        else:
            selected.append(svc.as_selection())
    for entry in skipped:
        logger.info(f"Special service {entry['service']} skipped on rule {rule.code}: {entry['reason']}")
    return selected, skipped


def _ineligibility(discount: Discount, base_price: Decimal, customer_type: str, service_type: str, at: datetime) -> Optional[str]:
    if not discount.is_active:
        return "inactive"
    if discount.start_date and discount.start_date > at:
        return "not_started"
    if discount.end_date and discount.end_date < at:
        return "expired"
    if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
        return "usage_limit_reached"
    if base_price < discount.min_order_value:
        return "min_order_value"
    if customer_type not in (discount.applicable_customer_types or []):
        return "customer_type"
    if service_type not in (discount.applicable_service_types or []):
        return "service_type"
    return None


def select_discount(
    rule: PricingRule,
    discount_code: Optional[str],
    base_price: Decimal,
    customer_type: str,
    service_type: str,
    at: datetime,
) -> Tuple[Optional[DiscountRule], List[Dict[str, str]]]:
    """
    With a code, return that discount as-is; window and usage checks then
    raise in `apply_adjustments`. Without a code, pick the best eligible
    discount: fixed before percentage, larger value first.
    """
    discounts = list(rule.discounts.all())
    if discount_code:
        match = next((x for x in discounts if x.code == discount_code), None)
        if match is None:
            raise NotFoundError(f"Discount code {discount_code} not found on rule {rule.code}", {"code": discount_code})
        reason = None
        if customer_type not in (match.applicable_customer_types or []):
            reason = "customer_type"
        elif service_type not in (match.applicable_service_types or []):
            reason = "service_type"
        if reason:
            raise ValidationError(
                f"Discount code {discount_code} does not apply to this shipment ({reason})",
                {"code": discount_code, "reason": reason},
            )
        return match.as_rule(), []

    eligible, skipped = [], []
    for discount in discounts:
        reason = _ineligibility(discount, base_price, customer_type, service_type, at)
        if reason:
            skipped.append({"discount": discount.code or discount.name, "reason": reason})
        elif discount.discount_type != "free_service":
            eligible.append(discount)
    if not eligible:
        return None, skipped
    eligible.sort(key=lambda x: (0 if x.discount_type == FIXED else 1, -x.value))
    return eligible[0].as_rule(), skipped


def calculate_price(request: PriceRequest, rule: Optional[PricingRule] = None, at: Optional[datetime] = None) -> Quote:
    at = at or now()
    rule = rule or select_rule(request, at)

    divisor = d(rule.volumetric_divisor or pricing_default("VOLUMETRIC_DIVISOR"))
    weights = weigh(request.items, divisor)

    distance = resolve_distance(request)
    if rule.pricing_type in DISTANCE_PRICING_TYPES and distance == ZERO and rule.distance_tiers.exists():
        raise ValidationError(
            f"Pricing rule {rule.code} is distance based; provide distance_km or coordinates",
            {"pricing_rule": rule.code},
        )

    base_rate, meta = compute_base_rate(rule, weights.chargeable, distance)
    services, skipped_services = select_special_services(rule, request.special_services, request.service_type)
    discount, skipped_discounts = select_discount(
        rule, request.discount_code, base_rate, request.customer_type, request.service_type, at
    )

    tax_pct = rule.tax_percentage if rule.tax_percentage is not None else pricing_default("TAX_PERCENTAGE")
    insurance_pct = (
        rule.insurance_percentage if rule.insurance_percentage is not None else pricing_default("INSURANCE_PERCENTAGE")
    )
    breakdown = apply_adjustments(base_rate, services, discount, tax_pct=tax_pct, insurance_pct=insurance_pct, at=at)
    breakdown.skipped = skipped_discounts + skipped_services + breakdown.skipped

    return Quote(
        weights=weights,
        breakdown=breakdown,
        base_rate=money(base_rate),
        distance_km=distance,
        pricing_rule_id=rule.pk,
        pricing_rule_code=rule.code,
        pricing_rule_name=rule.name,
        meta=meta,
    )


# --------------------------- Bookkeeping --------------------------

@transaction.atomic
def record_discount_usage(rule: PricingRule, label: str) -> int:
    """
    Lock the discount row, re-check its usage limit and bump usage_count.
    `label` is the discount code, or its name for code-less discounts.
    """
    discounts = list(
        Discount.objects.select_for_update().filter(Q(code=label) | Q(code="", name=label), rule=rule)
    )
    for discount in discounts:
        if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
            raise LimitExceededError(
                f"Discount {label} reached its usage limit ({discount.usage_limit})",
                {"discount": label, "usage_limit": discount.usage_limit},
            )
    updated = Discount.objects.filter(pk__in=[x.pk for x in discounts]).update(usage_count=F("usage_count") + 1)
    if updated:
        logger.info(f"Recorded usage of discount {label} on rule {rule.code}")
    return updated


def generate_rule_code(at: Optional[datetime] = None) -> str:
    """PR-YYYYMMDD-XXX with a per-day sequence, dated in local time."""
    at = localtime(at or now())
    prefix = f"PR-{at:%Y%m%d}-"
    latest = (
        PricingRule.objects.filter(code__startswith=prefix).order_by("-code").values_list("code", flat=True).first()
    )
    seq = 1
    if latest:
        try:
            seq = int(latest.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            logger.warning(f"Unparseable pricing rule code {latest}; restarting sequence")
    return f"{prefix}{seq:03d}"


def validate_rule_tiers(rule: PricingRule) -> List[str]:
    """Return a list of problems with the rule's weight and distance tiers."""
    problems = []
    for label, tiers in (("weight", rule.weight_tier_list()), ("distance", rule.distance_tier_list())):
        try:
            validate_tiers(tiers)
        except SamudraError as exc:
            problems.append(f"{label} tiers: {exc.message}")
    return problems
