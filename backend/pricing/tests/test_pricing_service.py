import re
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.contrib.admin.sites import AdminSite
from django.core.exceptions import ValidationError as ModelValidationError
from django.test import RequestFactory, TestCase
from django.utils.timezone import now

from core.errors import (
    ExpiredError,
    LimitExceededError,
    NotFoundError,
    RuleNotFoundError,
    TierNotFoundError,
    ValidationError,
)
from organizations.models import Branch
from pricing.admin import PricingRuleAdmin
from pricing.dataclasses import Coordinates, Item, PriceRequest
from pricing.models import Discount, DistanceTier, PricingRule, SpecialService, WeightTier
from pricing.services.pricing_service import (
    calculate_price,
    find_applicable_rules,
    generate_rule_code,
    record_discount_usage,
    validate_rule_tiers,
)

JAKARTA = {"province": "DKI Jakarta", "city": "Jakarta"}
BANDUNG = {"province": "Jawa Barat", "city": "Bandung"}
SURABAYA = {"province": "Jawa Timur", "city": "Surabaya"}


def make_rule(code, origin=JAKARTA, destination=BANDUNG, tiers=(), **kwargs):
    fields = dict(
        code=code,
        name=code,
        origin_province=origin["province"],
        origin_city=origin["city"],
        destination_province=destination["province"],
        destination_city=destination["city"],
        effective_date=now() - timedelta(days=1),
    )
    fields.update(kwargs)
    rule = PricingRule.objects.create(**fields)
    for min_bound, max_bound, per_unit in tiers:
        WeightTier.objects.create(
            rule=rule,
            min_bound=Decimal(min_bound),
            max_bound=Decimal(max_bound) if max_bound is not None else None,
            per_unit_price=Decimal(per_unit),
        )
    return rule


def price_request(weight, origin=JAKARTA, destination=BANDUNG, **kwargs):
    return PriceRequest(
        items=[Item(weight=Decimal(weight))],
        origin_area=dict(origin),
        destination_area=dict(destination),
        **kwargs,
    )


REFERENCE_TIERS = [("0", "5", "1000"), ("5", None, "800")]


class RuleSelectionTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.branch = Branch.objects.create(code="JKT", name="Jakarta Pusat")
        cls.other_branch = Branch.objects.create(code="SBY", name="Surabaya")
        cls.main = make_rule("PR-TEST-REG", tiers=REFERENCE_TIERS, priority=10)
        cls.low = make_rule("PR-TEST-LOW", tiers=[("0", None, "2000")], priority=1)
        make_rule("PR-TEST-OLD", tiers=REFERENCE_TIERS, priority=99, expiry_date=now() - timedelta(hours=1))
        make_rule("PR-TEST-OFF", tiers=REFERENCE_TIERS, priority=50, is_active=False)
        make_rule("PR-TEST-FUTURE", tiers=REFERENCE_TIERS, priority=80, effective_date=now() + timedelta(days=3))
        make_rule("PR-TEST-VIP", tiers=REFERENCE_TIERS, priority=70, applicable_customer_types=["vip"])
        make_rule("PR-TEST-SBY", tiers=REFERENCE_TIERS, priority=60, branch=cls.other_branch)

    def test_sorted_by_priority_and_filtered(self):
        rules = find_applicable_rules("regular", JAKARTA, BANDUNG)
        assert [r.code for r in rules] == ["PR-TEST-SBY", "PR-TEST-REG", "PR-TEST-LOW"]

    def test_branch_scope(self):
        codes = [r.code for r in find_applicable_rules("regular", JAKARTA, BANDUNG, branch_id=self.branch.pk)]
        assert codes == ["PR-TEST-REG", "PR-TEST-LOW"]

    def test_customer_type_scope(self):
        codes = [r.code for r in find_applicable_rules("regular", JAKARTA, BANDUNG, customer_type="vip", branch_id=self.branch.pk)]
        assert codes[0] == "PR-TEST-VIP"

    def test_area_match_is_case_insensitive(self):
        codes = [r.code for r in find_applicable_rules("regular", {"province": "dki jakarta", "city": "JAKARTA"}, BANDUNG, branch_id=self.branch.pk)]
        assert codes == ["PR-TEST-REG", "PR-TEST-LOW"]

    def test_other_service_type_has_no_rules(self):
        assert find_applicable_rules("express", JAKARTA, BANDUNG) == []

    def test_highest_priority_rule_prices_the_shipment(self):
        quote = calculate_price(price_request("3", branch_id=self.branch.pk))
        assert quote.pricing_rule_code == "PR-TEST-REG"
        assert quote.base_rate == Decimal("3000.00")
        assert quote.breakdown.tax == Decimal("330.00")
        assert quote.breakdown.insurance == Decimal("6.00")
        assert quote.breakdown.total == Decimal("3336.00")

    def test_open_ended_tier(self):
        quote = calculate_price(price_request("10", branch_id=self.branch.pk))
        assert quote.base_rate == Decimal("8000.00")

    def test_explicit_rule_code(self):
        quote = calculate_price(price_request("3", pricing_rule_code="PR-TEST-LOW"))
        assert quote.base_rate == Decimal("6000.00")

    def test_unknown_rule_code(self):
        with self.assertRaises(RuleNotFoundError):
            calculate_price(price_request("3", pricing_rule_code="PR-NOPE"))

    def test_explicit_inactive_rule_refused(self):
        with self.assertRaises(RuleNotFoundError) as ctx:
            calculate_price(price_request("3", pricing_rule_code="PR-TEST-OFF"))
        assert ctx.exception.details["reason"] == "inactive"

    def test_explicit_expired_rule_refused(self):
        with self.assertRaises(ExpiredError):
            calculate_price(price_request("3", pricing_rule_code="PR-TEST-OLD"))

    def test_explicit_rule_not_yet_effective_refused(self):
        with self.assertRaises(ExpiredError):
            calculate_price(price_request("3", pricing_rule_code="PR-TEST-FUTURE"))

    def test_explicit_rule_for_other_service_type_refused(self):
        with self.assertRaises(RuleNotFoundError):
            calculate_price(price_request("3", service_type="express", pricing_rule_code="PR-TEST-REG"))

    def test_explicit_rule_for_other_lane_refused(self):
        with self.assertRaises(RuleNotFoundError):
            calculate_price(price_request("3", origin=SURABAYA, pricing_rule_code="PR-TEST-REG"))

    def test_explicit_rule_for_other_customer_type_refused(self):
        with self.assertRaises(RuleNotFoundError):
            calculate_price(price_request("3", customer_type="regular", pricing_rule_code="PR-TEST-VIP"))

    def test_no_rule_for_lane(self):
        with self.assertRaises(RuleNotFoundError) as ctx:
            calculate_price(price_request("3", origin=SURABAYA, destination=BANDUNG))
        assert isinstance(ctx.exception, NotFoundError)

    def test_volumetric_weight_used_when_heavier(self):
        request = PriceRequest(
            items=[Item.from_dict({"weight": "1", "dimensions": {"length": 100, "width": 50, "height": 30}})],
            origin_area=dict(JAKARTA),
            destination_area=dict(BANDUNG),
            branch_id=self.branch.pk,
        )
        quote = calculate_price(request)
        assert quote.weights.chargeable == Decimal("30")
        assert quote.base_rate == Decimal("24000.00")


class RuleEvaluationTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.capped = make_rule("PR-TEST-CAP", tiers=[("0", "5", "1000")])
        cls.minimum = make_rule("PR-TEST-MIN", tiers=REFERENCE_TIERS, minimum_price=Decimal("5000"))
        cls.flat = make_rule("PR-TEST-FLAT", pricing_type="flat", base_price=Decimal("25000"))
        cls.distance = make_rule("PR-TEST-DIST", pricing_type="distance")
        DistanceTier.objects.create(rule=cls.distance, min_bound=Decimal("0"), max_bound=None, per_unit_price=Decimal("100"))
        cls.combined = make_rule("PR-TEST-COMBO", pricing_type="combined", tiers=REFERENCE_TIERS)
        DistanceTier.objects.create(rule=cls.combined, min_bound=Decimal("0"), max_bound=None, per_unit_price=Decimal("100"))
        cls.services = make_rule("PR-TEST-SVC", tiers=REFERENCE_TIERS, tax_percentage=Decimal("0"), insurance_percentage=Decimal("0"))
        SpecialService.objects.create(rule=cls.services, service_code="PACKING", service_name="Packing", price=Decimal("15000"))
        SpecialService.objects.create(
            rule=cls.services,
            service_code="SAMEDAY_COURIER",
            service_name="Courier",
            price=Decimal("5000"),
            applicable_service_types=["same_day"],
        )

    def test_weight_beyond_last_tier_is_an_error(self):
        with self.assertRaises(TierNotFoundError):
            calculate_price(price_request("10", pricing_rule_code="PR-TEST-CAP"))

    def test_minimum_price_clamp(self):
        quote = calculate_price(price_request("3", pricing_rule_code="PR-TEST-MIN"))
        assert quote.base_rate == Decimal("5000.00")
        assert quote.meta["minimum_price_applied"] is True

    def test_flat_rule(self):
        quote = calculate_price(price_request("42", pricing_rule_code="PR-TEST-FLAT"))
        assert quote.base_rate == Decimal("25000.00")

    def test_distance_from_coordinates(self):
        request = price_request(
            "3",
            pricing_rule_code="PR-TEST-DIST",
            origin_coordinates=Coordinates(Decimal("0"), Decimal("0")),
            destination_coordinates=Coordinates(Decimal("1"), Decimal("0")),
        )
        quote = calculate_price(request)
        assert quote.distance_km == Decimal("111.19")
        assert quote.base_rate == Decimal("11119.00")

    def test_explicit_distance(self):
        quote = calculate_price(price_request("3", pricing_rule_code="PR-TEST-DIST", distance_km=Decimal("50")))
        assert quote.base_rate == Decimal("5000.00")

    def test_distance_rule_without_distance(self):
        with self.assertRaises(ValidationError):
            calculate_price(price_request("3", pricing_rule_code="PR-TEST-DIST"))

    def test_combined_rule_adds_weight_and_distance(self):
        quote = calculate_price(price_request("3", pricing_rule_code="PR-TEST-COMBO", distance_km=Decimal("10")))
        assert quote.base_rate == Decimal("4000.00")

    def test_special_services_filtered_by_service_type(self):
        request = price_request("3", pricing_rule_code="PR-TEST-SVC", special_services=["PACKING", "SAMEDAY_COURIER", "GIFT_WRAP"])
        quote = calculate_price(request)
        assert [s.code for s in quote.breakdown.surcharges] == ["PACKING"]
        assert quote.breakdown.total == Decimal("18000.00")
        reasons = {entry["service"]: entry["reason"] for entry in quote.breakdown.skipped}
        assert reasons == {"SAMEDAY_COURIER": "not_applicable_to_service_type", "GIFT_WRAP": "unknown_service"}

    def test_tier_validation_reports_problems(self):
        WeightTier.objects.create(rule=self.capped, min_bound=Decimal("3"), max_bound=Decimal("8"), per_unit_price=Decimal("900"))
        problems = validate_rule_tiers(self.capped)
        assert len(problems) == 1
        assert problems[0].startswith("weight tiers:")


class DiscountSelectionTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.rule = make_rule(
            "PR-TEST-PROMO",
            origin=SURABAYA,
            tiers=[("0", None, "10000")],
            tax_percentage=Decimal("0"),
            insurance_percentage=Decimal("0"),
        )
        start = now() - timedelta(days=5)
        Discount.objects.create(rule=cls.rule, code="FLAT5K", name="Flat 5K", discount_type="fixed", value=Decimal("5000"), start_date=start)
        Discount.objects.create(
            rule=cls.rule,
            code="PCT10",
            name="Ten percent",
            discount_type="percentage",
            value=Decimal("10"),
            max_discount_amount=Decimal("25000"),
            start_date=start,
        )
        Discount.objects.create(
            rule=cls.rule,
            code="OLD",
            name="Old promo",
            discount_type="percentage",
            value=Decimal("50"),
            start_date=start,
            end_date=now() - timedelta(days=1),
        )
        Discount.objects.create(
            rule=cls.rule,
            code="MAXED",
            name="Maxed out",
            discount_type="fixed",
            value=Decimal("1000"),
            start_date=start,
            usage_limit=1,
            usage_count=1,
        )

    def _request(self, **kwargs):
        return price_request("10", origin=SURABAYA, pricing_rule_code="PR-TEST-PROMO", **kwargs)

    def test_best_eligible_discount_prefers_fixed(self):
        quote = calculate_price(self._request())
        assert quote.breakdown.applied_discount == "FLAT5K"
        assert quote.breakdown.discount == Decimal("5000.00")
        skipped = {entry["discount"]: entry["reason"] for entry in quote.breakdown.skipped}
        assert skipped == {"OLD": "expired", "MAXED": "usage_limit_reached"}

    def test_explicit_code(self):
        quote = calculate_price(self._request(discount_code="PCT10"))
        assert quote.breakdown.applied_discount == "PCT10"
        assert quote.breakdown.discount == Decimal("10000.00")
        assert quote.breakdown.total == Decimal("90000.00")

    def test_explicit_expired_code(self):
        with self.assertRaises(ExpiredError):
            calculate_price(self._request(discount_code="OLD"))

    def test_explicit_maxed_code(self):
        with self.assertRaises(LimitExceededError):
            calculate_price(self._request(discount_code="MAXED"))

    def test_unknown_code(self):
        with self.assertRaises(NotFoundError):
            calculate_price(self._request(discount_code="NOPE"))

    def test_code_not_for_customer_type(self):
        Discount.objects.filter(code="PCT10").update(applicable_customer_types=["corporate"])
        with self.assertRaises(ValidationError):
            calculate_price(self._request(discount_code="PCT10"))

    def test_record_usage(self):
        assert record_discount_usage(self.rule, "FLAT5K") == 1
        assert Discount.objects.get(code="FLAT5K").usage_count == 1

    def test_record_usage_over_limit(self):
        with self.assertRaises(LimitExceededError):
            record_discount_usage(self.rule, "MAXED")
        assert Discount.objects.get(code="MAXED").usage_count == 1


class RuleCodeTests(TestCase):

    def test_first_code_of_the_day(self):
        at = datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
        assert generate_rule_code(at) == "PR-20250301-001"

    def test_sequence_continues(self):
        at = datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
        make_rule("PR-20250301-007")
        make_rule("PR-20250228-050")
        assert generate_rule_code(at) == "PR-20250301-008"

    def test_admin_assigns_code_when_left_blank(self):
        rule = PricingRule(
            name="Jakarta - Bandung",
            origin_province=JAKARTA["province"],
            origin_city=JAKARTA["city"],
            destination_province=BANDUNG["province"],
            destination_city=BANDUNG["city"],
            effective_date=now(),
        )
        request = RequestFactory().post("/admin/pricing/pricingrule/add/")
        PricingRuleAdmin(PricingRule, AdminSite()).save_model(request, rule, form=None, change=False)
        assert re.fullmatch(r"PR-\d{8}-001", rule.code)
        assert PricingRule.objects.get(pk=rule.pk).code == rule.code

    def test_admin_keeps_given_code(self):
        rule = PricingRule(
            code="PR-MANUAL",
            name="Manual",
            origin_province=JAKARTA["province"],
            origin_city=JAKARTA["city"],
            destination_province=BANDUNG["province"],
            destination_city=BANDUNG["city"],
            effective_date=now(),
        )
        request = RequestFactory().post("/admin/pricing/pricingrule/add/")
        PricingRuleAdmin(PricingRule, AdminSite()).save_model(request, rule, form=None, change=False)
        assert rule.code == "PR-MANUAL"


class DiscountModelValidationTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.rule = make_rule("PR-TEST-DISC")

    def _discount(self, **kwargs):
        fields = dict(rule=self.rule, code="PROMO", name="Promo", discount_type="percentage", value=Decimal("10"), start_date=now())
        fields.update(kwargs)
        return Discount(**fields)

    def test_valid_discount(self):
        self._discount().full_clean()

    def test_percentage_above_hundred(self):
        with self.assertRaises(ModelValidationError) as ctx:
            self._discount(value=Decimal("150")).full_clean()
        assert "value" in ctx.exception.message_dict

    def test_negative_fixed_value(self):
        with self.assertRaises(ModelValidationError) as ctx:
            self._discount(discount_type="fixed", value=Decimal("-5000")).full_clean()
        assert "value" in ctx.exception.message_dict

    def test_negative_cap_and_minimum(self):
        with self.assertRaises(ModelValidationError) as ctx:
            self._discount(max_discount_amount=Decimal("-1"), min_order_value=Decimal("-1")).full_clean()
        assert {"max_discount_amount", "min_order_value"} <= set(ctx.exception.message_dict)

    def test_free_service_needs_service_code(self):
        with self.assertRaises(ModelValidationError) as ctx:
            self._discount(discount_type="free_service", value=Decimal("0")).full_clean()
        assert "service_code" in ctx.exception.message_dict
