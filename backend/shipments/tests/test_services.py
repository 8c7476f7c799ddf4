from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as ModelValidationError
from django.test import TestCase

from core.errors import InvalidTransitionError, ValidationError
from organizations.models import Branch
from pricing.dataclasses import PriceRequest
from pricing.models import Discount, PricingRule, WeightTier
from pricing.services.pricing_service import calculate_price
from shipments.models import ShipmentOrder, StatusHistory, WaybillSequence
from shipments.services import (
    ALLOWED_TRANSITIONS,
    cancel_shipment_order,
    create_shipment_order,
    generate_waybill_no,
    transition_status,
)

AT = datetime(2025, 3, 1, 5, 0, tzinfo=dt_timezone.utc)
JAKARTA = {"province": "DKI Jakarta", "city": "Jakarta"}
BANDUNG = {"province": "Jawa Barat", "city": "Bandung"}
SURABAYA = {"province": "Jawa Timur", "city": "Surabaya"}


def make_rule(code, origin=JAKARTA, destination=BANDUNG):
    rule = PricingRule.objects.create(
        code=code,
        name=code,
        origin_province=origin["province"],
        origin_city=origin["city"],
        destination_province=destination["province"],
        destination_city=destination["city"],
        effective_date=AT - timedelta(days=30),
    )
    WeightTier.objects.create(rule=rule, min_bound=Decimal("0"), max_bound=Decimal("5"), per_unit_price=Decimal("1000"))
    WeightTier.objects.create(rule=rule, min_bound=Decimal("5"), max_bound=None, per_unit_price=Decimal("800"))
    return rule


def order_data(branch, **overrides):
    data = {
        "branch": branch,
        "sender_name": "Budi Santoso",
        "sender_phone": "081234567890",
        "receiver_name": "Sari Wulandari",
        "receiver_address": "Jl. Asia Afrika 8, Bandung",
        "items": [
            {"description": "Sepatu", "weight": "1.5", "quantity": 2, "dimensions": {"length": 20, "width": 15, "height": 10}},
        ],
        "origin_area": dict(JAKARTA),
        "destination_area": dict(BANDUNG),
        "payment_type": "COD",
    }
    data.update(overrides)
    return data


class ShipmentCreationTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = get_user_model().objects.create_user(username="kasir", password="pass")
        cls.branch = Branch.objects.create(code="jkt", name="Jakarta Pusat")
        cls.rule = make_rule("PR-TEST-REG")
        cls.promo_rule = make_rule("PR-TEST-SBY", origin=SURABAYA)
        Discount.objects.create(
            rule=cls.promo_rule,
            code="HEMAT",
            name="Hemat",
            discount_type="fixed",
            value=Decimal("500"),
            start_date=AT - timedelta(days=1),
            usage_limit=10,
        )

    def test_waybill_format_and_sequence(self):
        first = create_shipment_order(order_data(self.branch), user=self.user, at=AT)
        second = create_shipment_order(order_data(self.branch), user=self.user, at=AT)
        assert first.waybill_no == "SM250301JK0001"
        assert second.waybill_no == "SM250301JK0002"

    def test_branches_sharing_a_prefix_share_the_sequence(self):
        east = Branch.objects.create(code="JKB", name="Jakarta Barat")
        first = create_shipment_order(order_data(self.branch), at=AT)
        second = create_shipment_order(order_data(east), at=AT)
        assert (first.waybill_no, second.waybill_no) == ("SM250301JK0001", "SM250301JK0002")

    def test_sequence_past_four_digits(self):
        WaybillSequence.objects.create(prefix="SM250301JK", last_value=9999)
        assert generate_waybill_no(self.branch, AT) == "SM250301JK10000"
        assert generate_waybill_no(self.branch, AT) == "SM250301JK10001"

    def test_sequence_restarts_each_day(self):
        create_shipment_order(order_data(self.branch), at=AT)
        assert generate_waybill_no(self.branch, AT + timedelta(days=1)) == "SM250302JK0001"

    def test_order_priced_like_a_quote(self):
        data = order_data(self.branch)
        quote = calculate_price(PriceRequest.from_dict(data), at=AT)
        order = create_shipment_order(data, user=self.user, at=AT)
        assert order.total_amount == quote.breakdown.total
        assert order.chargeable_weight == Decimal("3")
        assert order.volumetric_weight == Decimal("1.2")
        assert order.base_rate == Decimal("3000.00")
        assert order.total_amount == Decimal("3336.00")
        assert order.pricing_rule == self.rule
        assert order.price_breakdown["breakdown"]["total"] == "3336.00"

    def test_items_and_initial_history(self):
        order = create_shipment_order(order_data(self.branch), user=self.user, at=AT)
        assert order.status == "created"
        assert order.total_items == 2
        item = order.items.get()
        assert item.length == Decimal("20")
        assert item.unit == "cm"
        history = list(order.status_history.all())
        assert [h.status for h in history] == ["created"]
        assert history[0].user == self.user
        assert history[0].location == "Jakarta Pusat"

    def test_applied_discount_usage_recorded(self):
        data = order_data(self.branch, origin_area=dict(SURABAYA), discount_code="HEMAT")
        order = create_shipment_order(data, user=self.user, at=AT)
        assert order.discount == Decimal("500.00")
        assert order.discount_code == "HEMAT"
        assert Discount.objects.get(code="HEMAT").usage_count == 1

    def test_branch_by_id(self):
        order = create_shipment_order(order_data(self.branch.pk), at=AT)
        assert order.branch == self.branch

    def test_unknown_branch(self):
        with pytest.raises(ValidationError):
            create_shipment_order(order_data(999999), at=AT)


class StatusTransitionTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = get_user_model().objects.create_user(username="kurir", password="pass")
        cls.branch = Branch.objects.create(code="BDG", name="Bandung")
        make_rule("PR-TEST-REG")

    def setUp(self):
        self.order = create_shipment_order(order_data(self.branch), user=self.user, at=AT)

    def test_full_lifecycle(self):
        path = [
            "processed",
            "in_transit",
            "arrived_at_destination",
            "out_for_delivery",
            "failed_delivery",
            "out_for_delivery",
            "delivered",
        ]
        for status in path:
            transition_status(self.order, status, user=self.user, location="Hub Bandung")
        self.order.refresh_from_db()
        history = list(self.order.status_history.all())
        assert [h.status for h in history] == ["created"] + path
        assert self.order.status == history[-1].status == "delivered"

    def test_skipping_a_step_is_rejected(self):
        with pytest.raises(InvalidTransitionError) as exc:
            transition_status(self.order, "delivered")
        assert exc.value.details["allowed"] == ["cancelled", "processed"]
        self.order.refresh_from_db()
        assert self.order.status == "created"
        assert self.order.status_history.count() == 1

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            transition_status(self.order, "lost")

    def test_terminal_states_have_no_exits(self):
        for terminal in ("delivered", "returned", "cancelled"):
            assert ALLOWED_TRANSITIONS[terminal] == set()

    def test_cancel_is_soft(self):
        cancel_shipment_order(self.order, user=self.user, notes="Customer request")
        order = ShipmentOrder.objects.get(pk=self.order.pk)
        assert order.status == "cancelled"
        assert order.status_history.last().notes == "Customer request"
        with pytest.raises(InvalidTransitionError):
            transition_status(order, "processed")

    def test_cancel_after_transit_rejected(self):
        transition_status(self.order, "processed")
        transition_status(self.order, "in_transit")
        with pytest.raises(InvalidTransitionError):
            cancel_shipment_order(self.order)

    def test_timestamp_older_than_latest_entry_rejected(self):
        with pytest.raises(ValidationError):
            transition_status(self.order, "processed", at=AT - timedelta(hours=1))
        self.order.refresh_from_db()
        assert self.order.status == "created"
        assert self.order.status_history.count() == 1

    def test_backdated_entries_keep_history_in_order(self):
        transition_status(self.order, "processed", at=AT + timedelta(hours=1))
        with pytest.raises(ValidationError):
            transition_status(self.order, "in_transit", at=AT + timedelta(minutes=30))
        transition_status(self.order, "in_transit", at=AT + timedelta(hours=1))
        self.order.refresh_from_db()
        assert self.order.status_history.last().status == self.order.status == "in_transit"

    def test_caller_instance_updated(self):
        transition_status(self.order, "processed")
        assert self.order.status == "processed"

    def test_orders_are_never_deleted(self):
        with pytest.raises(ModelValidationError):
            self.order.delete()
        assert ShipmentOrder.objects.filter(pk=self.order.pk).exists()

    def test_history_is_append_only(self):
        entry = self.order.status_history.get()
        entry.notes = "rewritten"
        with pytest.raises(ModelValidationError):
            entry.save()
        with pytest.raises(ModelValidationError):
            entry.delete()
        assert StatusHistory.objects.get(pk=entry.pk).notes == "Shipment order created"
