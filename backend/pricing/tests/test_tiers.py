from decimal import Decimal

import pytest

from core.errors import NotFoundError, TierNotFoundError, ValidationError
from pricing.dataclasses import Tier
from pricing.services.tiers import match_tier, price_for_value, tier_price, validate_tiers

REFERENCE_TIERS = [
    Tier(min_bound=Decimal("0"), max_bound=Decimal("5"), per_unit_price=Decimal("1000")),
    Tier(min_bound=Decimal("5"), max_bound=None, per_unit_price=Decimal("800")),
]


class TestMatchTier:
    def test_reference_tiers_price_by_weight(self):
        _, price_3 = price_for_value(REFERENCE_TIERS, Decimal("3"))
        _, price_10 = price_for_value(REFERENCE_TIERS, Decimal("10"))
        assert price_3 == Decimal("3000")
        assert price_10 == Decimal("8000")

    def test_shared_boundary_goes_to_earlier_tier(self):
        assert match_tier(REFERENCE_TIERS, Decimal("5")) is REFERENCE_TIERS[0]

    def test_open_ended_tier_covers_large_values(self):
        assert match_tier(REFERENCE_TIERS, Decimal("100000")) is REFERENCE_TIERS[1]

    def test_no_match_raises(self):
        tiers = [Tier(min_bound=Decimal("1"), max_bound=Decimal("5"), per_unit_price=Decimal("1000"))]
        with pytest.raises(TierNotFoundError) as exc:
            match_tier(tiers, Decimal("10"))
        assert isinstance(exc.value, NotFoundError)
        assert exc.value.details["value"] == "10"

    def test_value_below_first_tier_raises(self):
        tiers = [Tier(min_bound=Decimal("1"), max_bound=Decimal("5"))]
        with pytest.raises(TierNotFoundError):
            match_tier(tiers, Decimal("0.5"))

    def test_empty_tiers_raise(self):
        with pytest.raises(TierNotFoundError):
            match_tier([], Decimal("1"))

    def test_negative_value_rejected(self):
        with pytest.raises(ValidationError):
            match_tier(REFERENCE_TIERS, Decimal("-1"))

    def test_exactly_one_match_in_range(self):
        tiers = [
            Tier(min_bound=Decimal("0"), max_bound=Decimal("1")),
            Tier(min_bound=Decimal("1.001"), max_bound=Decimal("10")),
            Tier(min_bound=Decimal("10.001"), max_bound=Decimal("50")),
        ]
        validate_tiers(tiers)
        for raw in ("0", "0.5", "1", "1.5", "9.99", "10", "20", "50"):
            value = Decimal(raw)
            assert sum(1 for t in tiers if t.covers(value)) == 1


class TestTierPrice:
    def test_flat_price_wins_over_per_unit(self):
        tier = Tier(min_bound=Decimal("0"), max_bound=Decimal("1"), per_unit_price=Decimal("5000"), flat_price=Decimal("9000"))
        assert tier_price(tier, Decimal("0.7")) == Decimal("9000")

    def test_per_unit_price(self):
        tier = Tier(min_bound=Decimal("0"), per_unit_price=Decimal("1500"))
        assert tier_price(tier, "2.5") == Decimal("3750")


class TestValidateTiers:
    def test_reference_tiers_valid(self):
        validate_tiers(REFERENCE_TIERS)

    def test_overlap_rejected(self):
        tiers = [
            Tier(min_bound=Decimal("0"), max_bound=Decimal("10")),
            Tier(min_bound=Decimal("5"), max_bound=Decimal("20")),
        ]
        with pytest.raises(ValidationError):
            validate_tiers(tiers)

    def test_unsorted_rejected(self):
        tiers = [
            Tier(min_bound=Decimal("10"), max_bound=Decimal("20")),
            Tier(min_bound=Decimal("0"), max_bound=Decimal("5")),
        ]
        with pytest.raises(ValidationError):
            validate_tiers(tiers)

    def test_open_ended_not_last_rejected(self):
        tiers = [
            Tier(min_bound=Decimal("0"), max_bound=None),
            Tier(min_bound=Decimal("5"), max_bound=Decimal("10")),
        ]
        with pytest.raises(ValidationError):
            validate_tiers(tiers)

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValidationError):
            validate_tiers([Tier(min_bound=Decimal("5"), max_bound=Decimal("1"))])

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            validate_tiers([Tier(min_bound=Decimal("0"), per_unit_price=Decimal("-1"))])
