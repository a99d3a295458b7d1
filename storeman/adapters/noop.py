"""
Noop adapters — stand-ins for development and testing.

- NoopPaymentAuthority: every payment reference is authorized
- NoopNotificationDispatcher: events are logged, nothing is sent

Usage in settings.py:
    STOREMAN = {
        "PAYMENT_AUTHORITY": "storeman.adapters.noop.NoopPaymentAuthority",
        "NOTIFICATION_DISPATCHER": "storeman.adapters.noop.NoopNotificationDispatcher",
    }

WARNING: Do NOT use NoopPaymentAuthority in production. It accepts any
reference, including empty ones.
"""

from __future__ import annotations

import logging
from decimal import Decimal

logger = logging.getLogger(__name__)


class NoopPaymentAuthority:
    """Authorizes everything. Implements ``PaymentAuthority``."""

    def is_authorized(self, reference: str, amount: Decimal) -> bool:
        return True


class NoopNotificationDispatcher:
    """
    Logs order events instead of delivering them.

    Implements ``NotificationDispatcher`` without any external dependency,
    for local development and tests.
    """

    def order_placed(self, order) -> None:
        logger.info("notification.order_placed", extra={"order": order.number})

    def order_status_changed(self, order, previous: str) -> None:
        logger.info(
            "notification.order_status_changed",
            extra={"order": order.number, "from": previous, "to": order.status},
        )
