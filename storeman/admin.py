"""
Storeman Admin.

Quantities are read-only everywhere: stock only changes through the
Stock service, which writes the ledger.

- Product: editable catalog fields; mode switch via actions; variants inline
- Move: read-only audit trail
- PickupWindow / BlockedSlot / PickupSettings: editable
- Order: read-only lines, status changes via the Orders service
"""

import logging

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from storeman.exceptions import BaseError
from storeman.models import (
    BlockedSlot,
    InventoryMode,
    Move,
    Order,
    OrderItem,
    PickupSettings,
    PickupWindow,
    Product,
    Variant,
)

logger = logging.getLogger(__name__)


# =========================================================================
# PRODUCT ADMIN
# =========================================================================

class VariantInline(admin.TabularInline):
    model = Variant
    extra = 0
    fields = ['name', 'sku', 'price', 'quantity', 'low_stock_threshold', 'is_available', 'is_default']
    readonly_fields = ['quantity', 'is_default']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Product admin — quantity read-only, mode switched by action."""

    list_display = ['name', 'inventory_mode', 'quantity', 'stock_status_display', 'is_available']
    list_filter = ['inventory_mode', 'is_available']
    search_fields = ['name', 'slug', 'sku_prefix']
    prepopulated_fields = {'slug': ['name']}
    readonly_fields = ['quantity', 'created_at', 'updated_at']
    inlines = [VariantInline]
    actions = ['make_untracked', 'make_product_level', 'make_variant_level']

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields.append('inventory_mode')
        return fields

    def save_model(self, request, obj, form, change):
        from storeman import stock

        super().save_model(request, obj, form, change)
        if not change:
            stock.ensure_placeholder(obj)

    @admin.display(description=_('Estoque'))
    def stock_status_display(self, obj):
        return obj.stock_status

    def _change_mode(self, request, queryset, mode):
        from storeman import stock

        count = 0
        for product in queryset:
            try:
                stock.change_mode(product, mode, user=request.user)
                count += 1
            except BaseError as exc:
                logger.warning("change_mode: failed for %s: %s", product.pk, exc)
                self.message_user(request, f"{product}: {exc.message}", level=messages.ERROR)

        self.message_user(request, _('{count} produto(s) atualizado(s).').format(count=count))

    @admin.action(description=_('Trocar para sem controle'))
    def make_untracked(self, request, queryset):
        self._change_mode(request, queryset, InventoryMode.UNTRACKED)

    @admin.action(description=_('Trocar para controle por produto'))
    def make_product_level(self, request, queryset):
        self._change_mode(request, queryset, InventoryMode.PRODUCT)

    @admin.action(description=_('Trocar para controle por variante'))
    def make_variant_level(self, request, queryset):
        self._change_mode(request, queryset, InventoryMode.VARIANT)


# =========================================================================
# MOVE ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Move)
class MoveAdmin(admin.ModelAdmin):
    """Move admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'target_label', 'kind', 'delta', 'new_quantity', 'reason', 'order', 'user']
    list_filter = ['kind', 'timestamp']
    search_fields = ['reason', 'order__number']
    readonly_fields = ['product', 'variant', 'kind', 'delta', 'previous_quantity',
                       'new_quantity', 'reason', 'order', 'user', 'metadata', 'timestamp']
    date_hierarchy = 'timestamp'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# PICKUP ADMIN
# =========================================================================

@admin.register(PickupWindow)
class PickupWindowAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'capacity', 'active']
    list_filter = ['active', 'day_of_week']


@admin.register(BlockedSlot)
class BlockedSlotAdmin(admin.ModelAdmin):
    list_display = ['date', 'time_range', 'reason']
    date_hierarchy = 'date'
    search_fields = ['reason']


@admin.register(PickupSettings)
class PickupSettingsAdmin(admin.ModelAdmin):
    list_display = ['name', 'active', 'lead_time_hours', 'slot_capacity', 'slot_minutes']


# =========================================================================
# ORDER ADMIN (read-only lines)
# =========================================================================

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product_name', 'variant_name', 'sku', 'quantity', 'unit_price', 'total_price', 'placed_move']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Order admin — read-only. Cancel action returns stock."""

    list_display = ['number', 'kind', 'status', 'payment_status', 'customer_name',
                    'pickup_date', 'pickup_slot', 'total', 'created_at']
    list_filter = ['kind', 'status', 'payment_status', 'pickup_date']
    search_fields = ['number', 'customer_name', 'customer_email']
    readonly_fields = ['number', 'kind', 'status', 'payment_status', 'payment_reference',
                       'customer_name', 'customer_email', 'customer_phone', 'pickup_date',
                       'pickup_slot', 'total', 'notes', 'stock_restored', 'user',
                       'created_at', 'updated_at']
    inlines = [OrderItemInline]
    actions = ['cancel_orders']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description=_('Cancelar pedidos selecionados'))
    def cancel_orders(self, request, queryset):
        from storeman import orders

        count = 0
        for order in queryset.exclude(status='cancelled'):
            try:
                orders.cancel(order, user=request.user)
                count += 1
            except BaseError as exc:
                logger.warning("cancel_orders: failed to cancel %s: %s", order.number, exc)

        self.message_user(request, _('{count} pedido(s) cancelado(s).').format(count=count))
