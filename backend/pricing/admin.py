from django.contrib import admin, messages

from pricing.models import Discount, DistanceTier, PricingRule, SpecialService, WeightTier
from pricing.services.pricing_service import generate_rule_code, validate_rule_tiers


class WeightTierInline(admin.TabularInline):
    model = WeightTier
    extra = 0


class DistanceTierInline(admin.TabularInline):
    model = DistanceTier
    extra = 0


class SpecialServiceInline(admin.TabularInline):
    model = SpecialService
    extra = 0


class DiscountInline(admin.StackedInline):
    model = Discount
    extra = 0


@admin.register(PricingRule)
class PricingRuleAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "service_type",
        "origin_city",
        "destination_city",
        "pricing_type",
        "priority",
        "is_active",
        "effective_date",
        "expiry_date",
    )
    list_filter = ("service_type", "pricing_type", "is_active", "branch")
    search_fields = ("code", "name", "origin_city", "destination_city")
    inlines = [WeightTierInline, DistanceTierInline, SpecialServiceInline, DiscountInline]
    actions = ["validate_tiers"]

    def validate_tiers(self, request, queryset):
        any_warn = False
        for rule in queryset:
            for problem in validate_rule_tiers(rule):
                any_warn = True
                messages.warning(request, f"Rule {rule.code}: {problem}")
        if not any_warn:
            messages.info(request, "Selected rules have sorted, non-overlapping tiers.")

    validate_tiers.short_description = "Validate weight and distance tiers"

    def save_model(self, request, obj, form, change):
        if not obj.code:
            obj.code = generate_rule_code()
        super().save_model(request, obj, form, change)


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ("id", "rule", "code", "discount_type", "value", "usage_count", "usage_limit", "is_active")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "name")
