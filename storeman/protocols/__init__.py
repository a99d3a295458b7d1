"""
Storeman Protocols.

Defines interfaces for the external collaborators of order placement.
"""

from storeman.protocols.notification import NotificationDispatcher
from storeman.protocols.payment import PaymentAuthority

__all__ = [
    "NotificationDispatcher",
    "PaymentAuthority",
]
