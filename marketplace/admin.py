from django.contrib import admin

from marketplace.infra.models import (
    CartLineORM,
    CartORM,
    IdempotencyKey,
    OrderItemORM,
    OrderORM,
    SupplyORM,
)
from marketplace.infra.outbox import OutboxEvent


@admin.register(SupplyORM)
class SupplyAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "category", "price", "stock_quantity", "unit", "featured")
    list_filter = ("category", "featured")
    search_fields = ("name", "sku")
    # Stock moves through checkout/cancel only
    readonly_fields = ("stock_quantity",)

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ()
        return self.readonly_fields


class CartLineInline(admin.TabularInline):
    model = CartLineORM
    extra = 0


@admin.register(CartORM)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "created_at", "updated_at")
    search_fields = ("user_id",)
    inlines = (CartLineInline,)


class OrderItemInline(admin.TabularInline):
    model = OrderItemORM
    extra = 0
    can_delete = False
    readonly_fields = ("supply_id", "supply_name", "quantity", "unit_price", "discount", "subtotal")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "user_id", "status", "total", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("id", "user_id", "tracking_number")
    inlines = (OrderItemInline,)
    # Status changes go through OrderLifecycleService
    readonly_fields = (
        "user_id", "status", "subtotal", "discount", "tax", "total",
        "shipped_at", "delivered_at", "tracking_number",
    )


@admin.register(IdempotencyKey)
class IdempotencyAdmin(admin.ModelAdmin):
    list_display = ("key", "user_id", "operation", "created_at")
    list_filter = ("operation", "created_at")
    search_fields = ("key", "user_id")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "aggregate_type", "event_type", "processed", "retry_count", "created_at")
    list_filter = ("processed", "aggregate_type", "event_type", "created_at")
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_data", "processed", "processed_at", "retry_count")
