"""
Django Storeman — stock ledger, pickup slots and order fulfillment.

Usage:
    from storeman import stock, StockError

    stock.restock(12, variant, reason='Chegada do fornecedor')
    stock.decrement(2, variant)
    stock.quantity(variant)  # 10
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from storeman.service import Stock
        return Stock
    elif name == 'pickup':
        from storeman.service import Pickup
        return Pickup
    elif name == 'orders':
        from storeman.service import Orders
        return Orders
    elif name == 'StockError':
        from storeman.exceptions import StockError
        return StockError
    elif name == 'InsufficientStock':
        from storeman.exceptions import InsufficientStock
        return InsufficientStock
    elif name == 'SlotUnavailable':
        from storeman.exceptions import SlotUnavailable
        return SlotUnavailable
    elif name == 'OrderError':
        from storeman.exceptions import OrderError
        return OrderError
    elif name == 'Product':
        from storeman.models.product import Product
        return Product
    elif name == 'Variant':
        from storeman.models.product import Variant
        return Variant
    elif name == 'Move':
        from storeman.models.move import Move
        return Move
    elif name == 'Order':
        from storeman.models.order import Order
        return Order
    elif name == 'InventoryMode':
        from storeman.models.enums import InventoryMode
        return InventoryMode
    elif name == 'MoveKind':
        from storeman.models.enums import MoveKind
        return MoveKind
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'pickup',
    'orders',
    'StockError',
    'InsufficientStock',
    'SlotUnavailable',
    'OrderError',
    'Product',
    'Variant',
    'Move',
    'Order',
    'InventoryMode',
    'MoveKind',
]

__version__ = '0.1.0'
