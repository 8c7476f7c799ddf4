"""
Tiered rate matching for weight and distance based pricing.

Tiers are bounded numeric ranges sorted ascending by `min_bound`. A value is
covered by a tier when `min_bound <= value <= max_bound` (an unset
`max_bound` is open ended). Neighbouring tiers may share a boundary value;
the earlier tier wins, so `[0, 5]` and `[5, None]` price 5 kg with the first.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Sequence, Tuple

from core.errors import TierNotFoundError, ValidationError
from core.utils import ZERO, d

from ..dataclasses import Tier

logger = logging.getLogger(__name__)


def validate_tiers(tiers: Sequence[Tier]) -> None:
    """Raise ValidationError unless tiers are well-formed, sorted and non-overlapping."""
    previous = None
    for idx, tier in enumerate(tiers):
        if tier.min_bound < ZERO:
            raise ValidationError(f"Tier {idx}: min_bound must be >= 0", {"index": idx})
        if tier.max_bound is not None and tier.max_bound < tier.min_bound:
            raise ValidationError(
                f"Tier {idx}: max_bound ({tier.max_bound}) is below min_bound ({tier.min_bound})",
                {"index": idx},
            )
        if tier.per_unit_price < ZERO or (tier.flat_price is not None and tier.flat_price < ZERO):
            raise ValidationError(f"Tier {idx}: prices must be >= 0", {"index": idx})
        if previous is not None:
            if previous.max_bound is None:
                raise ValidationError(
                    f"Tier {idx - 1} is open ended but is not the last tier", {"index": idx - 1}
                )
            if tier.min_bound < previous.min_bound:
                raise ValidationError(f"Tiers must be sorted ascending by min_bound (tier {idx})", {"index": idx})
            if tier.min_bound < previous.max_bound:
                raise ValidationError(
                    f"Tier {idx} overlaps tier {idx - 1} ({tier.min_bound} < {previous.max_bound})",
                    {"index": idx},
                )
        previous = tier


def match_tier(tiers: Sequence[Tier], value) -> Tier:
    """Return the first tier covering `value`.

    Raises TierNotFoundError when no tier covers it; callers decide whether
    that rejects the request. No fallback tier is ever substituted.
    """
    value = d(value)
    if value < ZERO:
        raise ValidationError(f"Value must be >= 0, got {value}")
    for tier in tiers:
        if tier.covers(value):
            return tier
    covered = _describe(tiers)
    logger.debug(f"No tier covers {value}; tiers: {covered}")
    raise TierNotFoundError(f"No tier covers value {value}", {"value": str(value), "tiers": covered})


def tier_price(tier: Tier, value) -> Decimal:
    """flat_price when the tier has one, else per_unit_price * value."""
    if tier.flat_price is not None:
        return tier.flat_price
    return tier.per_unit_price * d(value)


def price_for_value(tiers: Sequence[Tier], value) -> Tuple[Tier, Decimal]:
    tier = match_tier(tiers, value)
    return tier, tier_price(tier, value)


def _describe(tiers: Sequence[Tier]) -> List[str]:
    return [f"[{t.min_bound}, {t.max_bound if t.max_bound is not None else 'inf'}]" for t in tiers]
