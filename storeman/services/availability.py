"""
Availability — pickup slots from persisted windows, blocks and bookings.

Loads the inputs of storeman.slots.build_day and nothing else: there is
no second slot algorithm. Booked counts are unlocked reads; the locked
stock decrement at order placement stays authoritative.

Usage:
    config = BookingConfig.load()
    day = slots_for(date(2025, 1, 3), config)
    day.available_slot_count
    check_slot(date(2025, 1, 3), '10:00-10:30', config)
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from django.db.models import Count
from django.utils import timezone

from storeman.conf import storeman_settings
from storeman.exceptions import InvalidRequest, SlotUnavailable
from storeman.models.order import Order
from storeman.models.pickup import BlockedSlot, PickupSettings, PickupWindow
from storeman.slots import (
    DaySummary,
    Slot,
    build_day,
    day_of_week,
    minimum_order_date,
    parse_label,
)

logger = logging.getLogger('storeman')


@dataclass(frozen=True)
class BookingConfig:
    """
    Booking configuration for one request.

    Loaded once (BookingConfig.load()) and passed explicitly to the
    availability and order code.
    """

    name: str = 'default'
    active: bool = True
    lead_time_hours: int = 48
    slot_capacity: int = 5
    slot_minutes: int = 30
    max_days: int = 90
    pickup_location: str = ''
    pickup_phone: str = ''

    @classmethod
    def load(cls, name: str | None = None) -> 'BookingConfig':
        """
        Read the named PickupSettings row, falling back to STOREMAN settings
        when the row does not exist.
        """
        name = name or storeman_settings.BOOKING_SETTINGS_NAME
        row = PickupSettings.objects.filter(name=name).first()
        if row is None:
            return cls.from_settings(name)
        return cls(
            name=row.name,
            active=row.active,
            lead_time_hours=row.lead_time_hours,
            slot_capacity=row.slot_capacity,
            slot_minutes=row.slot_minutes,
            max_days=storeman_settings.MAX_AVAILABILITY_DAYS,
            pickup_location=row.pickup_location,
            pickup_phone=row.pickup_phone,
        )

    @classmethod
    def from_settings(cls, name: str = 'default') -> 'BookingConfig':
        return cls(
            name=name,
            lead_time_hours=storeman_settings.LEAD_TIME_HOURS,
            slot_capacity=storeman_settings.SLOT_CAPACITY,
            slot_minutes=storeman_settings.SLOT_MINUTES,
            max_days=storeman_settings.MAX_AVAILABILITY_DAYS,
        )

    def minimum_date(self, now: datetime | None = None) -> date:
        return minimum_order_date(_local(now), self.lead_time_hours)


def slots_for(day: date, config: BookingConfig, now: datetime | None = None) -> DaySummary:
    """Every slot of one date (no slots when no active window)."""
    return availability(day, day, config, now=now)[0]


def availability(date_from: date, date_to: date, config: BookingConfig,
                 now: datetime | None = None) -> list[DaySummary]:
    """
    One DaySummary per date in [date_from, date_to].

    The range is capped at config.max_days dates. Closed dates are
    included with no slots.

    Raises:
        InvalidRequest: If date_to is before date_from
    """
    if date_to < date_from:
        raise InvalidRequest({'to': 'must not be before from'})
    last = min(date_to, date_from + timedelta(days=config.max_days - 1))
    now = _local(now)

    windows = _windows_by_day()
    blocked = defaultdict(list)
    for block in BlockedSlot.objects.filter(date__range=(date_from, last)):
        blocked[block.date].append((block.start_time, block.end_time))
    booked = defaultdict(dict)
    rows = (
        Order.objects.pickups().active()
        .filter(pickup_date__range=(date_from, last))
        .values('pickup_date', 'pickup_slot')
        .annotate(n=Count('pk'))
    )
    for row in rows:
        booked[row['pickup_date']][row['pickup_slot']] = row['n']

    days = []
    current = date_from
    while current <= last:
        window = windows.get(day_of_week(current))
        days.append(build_day(
            current,
            window.start_time if window else None,
            window.end_time if window else None,
            blocked[current],
            booked[current],
            capacity=(window.capacity if window and window.capacity else config.slot_capacity),
            slot_minutes=config.slot_minutes,
            lead_time_hours=config.lead_time_hours,
            now=now,
        ))
        current += timedelta(days=1)
    return days


def check_slot(day: date, label: str, config: BookingConfig,
               now: datetime | None = None) -> Slot:
    """
    The slot, if it can be booked right now.

    Raises:
        InvalidRequest: If the label is not HH:MM-HH:MM with end after start
        SlotUnavailable: reason is 'invalid' (not a slot of the day),
            'closed' (no window), 'blocked', 'too_soon' or 'full'
    """
    try:
        parse_label(label)
    except ValueError:
        raise InvalidRequest({'slot': 'invalid (HH:MM-HH:MM)'})

    summary = slots_for(day, config, now=now)
    if not summary.slots:
        raise SlotUnavailable('closed', date=day, slot=label)

    slot = summary.get(label)
    if slot is None:
        raise SlotUnavailable('invalid', date=day, slot=label)
    if not slot.available:
        logger.info(
            "pickup.slot.rejected",
            extra={
                "date": day.isoformat(),
                "slot": label,
                "reason": slot.unavailable_reason,
                "booked": slot.booked,
            },
        )
        raise SlotUnavailable(
            slot.unavailable_reason,
            date=day,
            slot=label,
            remaining=slot.remaining,
        )
    return slot


def _windows_by_day() -> dict[int, PickupWindow]:
    """Earliest active window per weekday."""
    windows = {}
    for window in PickupWindow.objects.active().order_by('day_of_week', 'start_time'):
        windows.setdefault(window.day_of_week, window)
    return windows


def _local(now: datetime | None) -> datetime:
    now = now or timezone.now()
    if timezone.is_aware(now):
        return timezone.localtime(now)
    return now
