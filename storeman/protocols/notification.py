"""
Notification Dispatcher Protocol — Interface for order notifications.

Called only after the order transaction commits. Storeman does not render
or deliver anything; failures are logged and never undo the order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from storeman.models.order import Order


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Protocol for post-commit order events."""

    def order_placed(self, order: Order) -> None:
        """A new order was committed."""
        ...

    def order_status_changed(self, order: Order, previous: str) -> None:
        """
        An order status change was committed.

        Args:
            order: Order with its new status
            previous: Status before the change
        """
        ...
