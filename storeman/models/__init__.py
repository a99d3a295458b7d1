"""
Storeman Models.

Core models:
- Product / Variant: Stock holders (quantity is a ledger projection)
- Move: Immutable ledger of quantity changes
- PickupWindow / BlockedSlot / PickupSettings: Pickup scheduling
- Order / OrderItem: Unit of atomicity for stock mutation
"""

from storeman.models.enums import (
    InventoryMode,
    MoveKind,
    OrderKind,
    PaymentStatus,
    PickupStatus,
    RetailStatus,
)
from storeman.models.move import Move
from storeman.models.order import Order, OrderItem
from storeman.models.pickup import BlockedSlot, PickupSettings, PickupWindow
from storeman.models.product import Product, StockStatus, Variant

__all__ = [
    'InventoryMode',
    'MoveKind',
    'OrderKind',
    'PaymentStatus',
    'PickupStatus',
    'RetailStatus',
    'Product',
    'Variant',
    'StockStatus',
    'Move',
    'Order',
    'OrderItem',
    'PickupWindow',
    'BlockedSlot',
    'PickupSettings',
]
