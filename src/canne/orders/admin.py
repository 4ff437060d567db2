from django.contrib import admin, messages
from django.utils.html import format_html

from canne.core.exceptions import StorefrontError

from . import services
from .models import CashAppOrder, Driver, DriverApplication, Order, OrderItem, OrderStatusEvent, Payout


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "product_name", "unit_price", "quantity")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer_name", "customer_phone", "total", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("order_number", "customer_name", "customer_phone", "customer_email")
    readonly_fields = ("order_number", "subtotal", "delivery_fee", "total", "created_at")
    inlines = [OrderItemInline]


class OrderStatusEventInline(admin.TabularInline):
    model = OrderStatusEvent
    extra = 0
    readonly_fields = ("from_status", "to_status", "reason", "admin_action", "created_at")


@admin.register(CashAppOrder)
class CashAppOrderAdmin(admin.ModelAdmin):
    list_display = ("short_code", "amount_cents", "customer_phone", "cashapp_handle", "status", "preview_screenshot", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("short_code", "customer_phone", "cashapp_handle")
    readonly_fields = ("short_code", "created_at", "updated_at")
    inlines = [OrderStatusEventInline]

    actions = ["mark_as_verifying", "mark_as_paid"]

    @admin.display(description="Proof")
    def preview_screenshot(self, obj):
        if obj.screenshot_url:
            return format_html('<a href="{}" target="_blank">View</a>', obj.screenshot_url)
        return "-"

    def _change_status(self, request, queryset, new_status):
        changed = 0
        for order in queryset:
            try:
                services.change_status(order.short_code, new_status, admin_action=True)
            except StorefrontError as e:
                self.message_user(request, f"{order.short_code}: {e.message}", messages.WARNING)
            else:
                changed += 1
        self.message_user(request, f"{changed} order(s) moved to {new_status}")

    @admin.action(description="Mark as Payment Under Review")
    def mark_as_verifying(self, request, queryset):
        self._change_status(request, queryset, CashAppOrder.Status.VERIFYING)

    @admin.action(description="Mark as Payment Confirmed")
    def mark_as_paid(self, request, queryset):
        self._change_status(request, queryset, CashAppOrder.Status.PAID)


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ("full_name", "phone", "email", "is_active", "balance_cents", "created_at")
    list_filter = ("is_active",)
    search_fields = ("full_name", "phone", "email")


@admin.register(DriverApplication)
class DriverApplicationAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "vehicle_type", "status", "created_at")
    list_filter = ("status", "vehicle_type")
    search_fields = ("name", "phone", "email")


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ("driver", "order", "amount_cents", "status", "paid_at", "created_at")
    list_filter = ("status",)
    search_fields = ("driver__full_name", "order__short_code")
    raw_id_fields = ("driver", "order")
