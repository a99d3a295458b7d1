"""
Storeman Adapters.

Implementations of protocols for external systems, and their loaders.
"""

from storeman.adapters.loading import (
    get_notification_dispatcher,
    get_payment_authority,
    reset_adapters,
)
from storeman.adapters.noop import NoopNotificationDispatcher, NoopPaymentAuthority

__all__ = [
    "get_notification_dispatcher",
    "get_payment_authority",
    "reset_adapters",
    "NoopNotificationDispatcher",
    "NoopPaymentAuthority",
]
