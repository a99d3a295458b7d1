"""
Storeman Service — The public interface for stock, pickup and order operations.

Usage:
    from storeman import stock, pickup, orders, StockError

    stock.restock(12, variant, reason='Chegada do fornecedor')
    stock.quantity(variant)  # 12

    config = pickup.config()
    pickup.slots(friday, config).available_slot_count

    order = orders.place('pickup', [{'variant': variant, 'quantity': 2}],
                         {'name': 'Ana', 'email': 'ana@example.com'},
                         pickup_date=friday, pickup_slot='10:00-10:30', config=config)
    orders.cancel(order)
"""

from datetime import date, datetime

from storeman.models.enums import CANCELLED
from storeman.services.alerts import check_low_stock
from storeman.services.availability import BookingConfig, availability, check_slot, slots_for
from storeman.services.modes import change_mode, ensure_placeholder
from storeman.services.movements import StockMovements
from storeman.services.orders import OrderFulfillment
from storeman.services.queries import StockQueries
from storeman.slots import DaySummary, Slot


class Stock(StockQueries, StockMovements):
    """
    Single interface for stock operations.

    Parameter convention: (quantity, target, ...)
    Follows natural language: "Restock 12 shirts"

    IMPORTANT: All state-changing methods lock the holder row for the
    whole check-and-write. See storeman.holders.
    """

    # ══════════════════════════════════════════════════════════════
    # INVENTORY MODE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def change_mode(cls, product, new_mode, user=None):
        """Switch inventory mode, reconciling counters and variants."""
        return change_mode(product, new_mode, user=user)

    @classmethod
    def ensure_placeholder(cls, product):
        return ensure_placeholder(product)

    # ══════════════════════════════════════════════════════════════
    # ALERTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def low_stock(cls, product=None):
        return check_low_stock(product)


class Pickup:
    """Pickup slot availability."""

    @classmethod
    def config(cls, name: str | None = None) -> BookingConfig:
        """Booking configuration for this request."""
        return BookingConfig.load(name)

    @classmethod
    def slots(cls, day: date, config: BookingConfig | None = None,
              now: datetime | None = None) -> DaySummary:
        return slots_for(day, config or BookingConfig.load(), now=now)

    @classmethod
    def availability(cls, date_from: date, date_to: date,
                     config: BookingConfig | None = None,
                     now: datetime | None = None) -> list[DaySummary]:
        return availability(date_from, date_to, config or BookingConfig.load(), now=now)

    @classmethod
    def check(cls, day: date, label: str, config: BookingConfig | None = None,
              now: datetime | None = None) -> Slot:
        """Slot if bookable, else SlotUnavailable."""
        return check_slot(day, label, config or BookingConfig.load(), now=now)


class Orders(OrderFulfillment):
    """Order placement and lifecycle."""

    @classmethod
    def cancel(cls, order, user=None):
        """Shortcut for transition(order, 'cancelled')."""
        return cls.transition(order, CANCELLED, user=user)
