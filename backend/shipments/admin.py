from django.contrib import admin

from shipments.models import ShipmentItem, ShipmentOrder, StatusHistory


class ShipmentItemInline(admin.TabularInline):
    model = ShipmentItem
    extra = 0
    can_delete = False


class StatusHistoryInline(admin.TabularInline):
    model = StatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("status", "timestamp", "location", "notes", "user")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ShipmentOrder)
class ShipmentOrderAdmin(admin.ModelAdmin):
    list_display = ("waybill_no", "branch", "service_type", "payment_type", "status", "total_amount", "created_at")
    list_filter = ("status", "service_type", "payment_type", "branch")
    search_fields = ("waybill_no", "sender_name", "receiver_name")
    readonly_fields = ("status", "price_breakdown")
    inlines = [ShipmentItemInline, StatusHistoryInline]

    def has_delete_permission(self, request, obj=None):
        return False
