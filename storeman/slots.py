"""
Pickup slots — the one slot algorithm, isolated and database-free.

Given a date's window, its blocked ranges, booked counts per slot label,
capacity, slot length, lead time and "now", decides which slots can be
booked. services.availability loads the persisted inputs; everything
else (views, order placement) goes through it.

Examples:
    - Window 10:00-12:00, 30 min: 10:00-10:30, 10:30-11:00, 11:00-11:30, 11:30-12:00
    - Window 10:00-11:45, 30 min: the last slot is clipped to 11:30-11:45
    - Lead 48h, now Wed 09:00: Thursday closed, Friday open from 09:00
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone

LABEL_RE = re.compile(r'^(\d{2}):(\d{2})-(\d{2}):(\d{2})$')


def day_of_week(d: date) -> int:
    """Weekday number of a date, 0 = Sunday ... 6 = Saturday."""
    return (d.weekday() + 1) % 7


@dataclass(frozen=True)
class Slot:
    """One bookable interval [start, end) on a date."""

    label: str
    start: time
    end: time
    available: bool
    remaining: int
    blocked: bool = False
    booked: int = 0
    too_soon: bool = False

    @property
    def full(self) -> bool:
        return self.remaining == 0

    @property
    def unavailable_reason(self) -> str | None:
        """blocked, too_soon or full (first that applies); None when available."""
        if self.available:
            return None
        if self.blocked:
            return 'blocked'
        if self.too_soon:
            return 'too_soon'
        return 'full'


@dataclass(frozen=True)
class DaySummary:
    """A date's slots and the day-level answer folded from them."""

    date: date
    slots: tuple[Slot, ...] = field(default_factory=tuple)

    @property
    def day_of_week(self) -> int:
        return day_of_week(self.date)

    @property
    def available_slots(self) -> list[Slot]:
        return [s for s in self.slots if s.available]

    @property
    def available_slot_count(self) -> int:
        return len(self.available_slots)

    @property
    def fully_booked(self) -> bool:
        return self.available_slot_count == 0

    def get(self, label: str) -> Slot | None:
        for slot in self.slots:
            if slot.label == label:
                return slot
        return None


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_label(start: time, end: time) -> str:
    """(10:00, 10:30) → '10:00-10:30'."""
    return f"{start:%H:%M}-{end:%H:%M}"


def parse_label(label: str) -> tuple[time, time]:
    """
    '10:00-10:30' → (time(10, 0), time(10, 30)).

    Raises:
        ValueError: If the label is malformed or end <= start
    """
    match = LABEL_RE.match(label.strip()) if isinstance(label, str) else None
    if not match:
        raise ValueError(f"Invalid slot label: {label!r}")
    h1, m1, h2, m2 = (int(g) for g in match.groups())
    start, end = time(h1, m1), time(h2, m2)
    if end <= start:
        raise ValueError(f"Slot end must be after start: {label!r}")
    return start, end


def enumerate_slots(start: time, end: time, minutes: int) -> list[tuple[int, int]]:
    """
    Right-open steps of `minutes` from start to end, in minutes of the day.

    The final slot is clipped at `end` when the window is not a multiple
    of the slot length.
    """
    if minutes <= 0:
        raise ValueError("Slot length must be positive")
    first, last = to_minutes(start), to_minutes(end)
    result = []
    current = first
    while current < last:
        result.append((current, min(current + minutes, last)))
        current += minutes
    return result


def lead_threshold(now: datetime, lead_time_hours: int) -> datetime:
    """
    now + lead time, as elapsed hours.

    Aware datetimes are shifted in UTC and returned in now's zone, so a DST
    change inside the lead time does not move the threshold.
    """
    if now.tzinfo is None:
        return now + timedelta(hours=lead_time_hours)
    shifted = now.astimezone(dt_timezone.utc) + timedelta(hours=lead_time_hours)
    return shifted.astimezone(now.tzinfo)


def minimum_order_date(now: datetime, lead_time_hours: int) -> date:
    """First date with any chance of a bookable slot."""
    return lead_threshold(now, lead_time_hours).date()


def overlaps(start: time, end: time, ranges) -> bool:
    """Does [start, end) overlap any [range_start, range_end)?"""
    return any(r_start < end and r_end > start for r_start, r_end in ranges)


def build_day(day: date, window_start: time | None, window_end: time | None,
              blocked_ranges, booked_counts: dict[str, int], capacity: int,
              slot_minutes: int, lead_time_hours: int, now: datetime) -> DaySummary:
    """
    Compute every slot of a date.

    Args:
        day: Target date
        window_start / window_end: The date's pickup window (None = closed)
        blocked_ranges: Iterable of (start_time, end_time) blocked on `day`
        booked_counts: Non-cancelled bookings per slot label
        capacity: Bookings allowed per slot
        slot_minutes: Slot length
        lead_time_hours: Minimum hours between now and a slot start
        now: Current datetime; slots are laid out in its zone (naive = local)

    Returns:
        DaySummary. No slots when the day is closed; every slot unavailable
        when the day is before minimum_order_date(now, lead_time_hours).
    """
    if window_start is None or window_end is None:
        return DaySummary(date=day)

    threshold = lead_threshold(now, lead_time_hours)
    day_open = day >= threshold.date()
    blocked_ranges = list(blocked_ranges)

    slots = []
    for start_min, end_min in enumerate_slots(window_start, window_end, slot_minutes):
        start, end = from_minutes(start_min), from_minutes(end_min)
        label = format_label(start, end)
        booked = booked_counts.get(label, 0)
        blocked = overlaps(start, end, blocked_ranges)
        slot_start = datetime.combine(day, start, tzinfo=threshold.tzinfo)
        # Starting exactly at now + lead is far enough: Wed 09:00 with 48h
        # lead books Fri 09:00.
        too_soon = not day_open or _is_before(slot_start, threshold)
        slots.append(Slot(
            label=label,
            start=start,
            end=end,
            available=not blocked and booked < capacity and not too_soon,
            remaining=max(capacity - booked, 0),
            blocked=blocked,
            booked=booked,
            too_soon=too_soon,
        ))
    return DaySummary(date=day, slots=tuple(slots))


def _is_before(a: datetime, b: datetime) -> bool:
    if a.tzinfo is None:
        return a < b
    return a.astimezone(dt_timezone.utc) < b.astimezone(dt_timezone.utc)
