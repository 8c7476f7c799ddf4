from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.timezone import now

from organizations.models import Branch
from pricing.models import Discount, PricingRule, SpecialService, WeightTier
from pricing.services.pricing_service import validate_rule_tiers

BRANCHES = [
    {"code": "JKT", "name": "Jakarta Pusat", "city": "Jakarta", "province": "DKI Jakarta"},
    {"code": "BDG", "name": "Bandung", "city": "Bandung", "province": "Jawa Barat"},
]

WEIGHT_TIERS = [
    {"min_bound": Decimal("0"), "max_bound": Decimal("5"), "per_unit_price": Decimal("1000")},
    {"min_bound": Decimal("5"), "max_bound": None, "per_unit_price": Decimal("800")},
]


def ensure_branch(data):
    branch, _ = Branch.objects.get_or_create(code=data["code"], defaults=data)
    return branch


def ensure_rule(code, branch, service_type, tiers, **defaults):
    rule, created = PricingRule.objects.update_or_create(
        code=code,
        defaults={
            "name": f"Jakarta - Bandung {service_type}",
            "service_type": service_type,
            "origin_province": "DKI Jakarta",
            "origin_city": "Jakarta",
            "destination_province": "Jawa Barat",
            "destination_city": "Bandung",
            "pricing_type": "weight",
            "effective_date": now(),
            "branch": branch,
            **defaults,
        },
    )
    # Replace tiers to keep reruns deterministic
    rule.weight_tiers.all().delete()
    for tier in tiers:
        WeightTier.objects.create(rule=rule, **tier)
    return rule, created


class Command(BaseCommand):
    help = "Seed a demo branch pair and a weight-tier pricing rule for local development"

    @transaction.atomic
    def handle(self, *args, **options):
        origin = ensure_branch(BRANCHES[0])
        ensure_branch(BRANCHES[1])

        rule, created = ensure_rule("PR-DEMO-REG", origin, "regular", WEIGHT_TIERS, minimum_price=Decimal("10000"))
        SpecialService.objects.update_or_create(
            rule=rule,
            service_code="PACKING",
            defaults={"service_name": "Wooden packing", "price": Decimal("15000"), "is_percentage": False},
        )
        SpecialService.objects.update_or_create(
            rule=rule,
            service_code="INSURANCE_PLUS",
            defaults={"service_name": "Extended insurance", "price": Decimal("2"), "is_percentage": True},
        )
        Discount.objects.update_or_create(
            rule=rule,
            code="HEMAT10",
            defaults={
                "name": "Hemat 10%",
                "discount_type": "percentage",
                "value": Decimal("10"),
                "max_discount_amount": Decimal("25000"),
                "start_date": now(),
                "usage_limit": 1000,
            },
        )

        for problem in validate_rule_tiers(rule):
            self.stdout.write(self.style.WARNING(f"{rule.code}: {problem}"))

        verb = "Created" if created else "Updated"
        self.stdout.write(self.style.SUCCESS(f"{verb} pricing rule {rule.code} with {rule.weight_tiers.count()} tiers."))
