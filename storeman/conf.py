"""
Storeman configuration.

Usage in settings.py:
    STOREMAN = {
        "PAYMENT_AUTHORITY": "payments.adapters.StripeAuthority",
        "NOTIFICATION_DISPATCHER": "mailer.adapters.OrderMailer",
        "LEAD_TIME_HOURS": 48,
        "SLOT_CAPACITY": 5,
    }

These are process-wide defaults. Values an administrator edits at runtime
(lead time, capacity, slot length) live in the PickupSettings row and are
loaded per request through services.availability.BookingConfig.
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StoremanSettings:
    """Storeman configuration settings."""

    # Payment authority backend (dotted path)
    PAYMENT_AUTHORITY: str = "storeman.adapters.noop.NoopPaymentAuthority"

    # Notification dispatcher backend (dotted path)
    NOTIFICATION_DISPATCHER: str = "storeman.adapters.noop.NoopNotificationDispatcher"

    # Booking defaults used when no PickupSettings row exists
    SLOT_MINUTES: int = 30
    SLOT_CAPACITY: int = 5
    LEAD_TIME_HOURS: int = 48

    # Name of the PickupSettings row to load
    BOOKING_SETTINGS_NAME: str = "default"

    # Widest date range accepted by availability queries
    MAX_AVAILABILITY_DAYS: int = 90

    # Order numbers look like ORD-20250101-0001
    ORDER_NUMBER_PREFIX: str = "ORD"


def get_storeman_settings() -> StoremanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOREMAN", {})
    return StoremanSettings(**{
        k: v for k, v in user_settings.items()
        if k in StoremanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_storeman_settings(), name)


storeman_settings = _LazySettings()
