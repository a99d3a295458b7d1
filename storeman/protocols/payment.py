"""
Payment Authority Protocol — Interface for payment authorization.

Storeman never charges, captures or retries payments. Before any stock is
touched, it asks the configured authority whether the customer's payment
reference is authorized for the order amount.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable


@runtime_checkable
class PaymentAuthority(Protocol):
    """
    Protocol for payment authorization.

    Implementations wrap a gateway (Stripe payment intents, a POS, ...)
    and answer one question per order.
    """

    def is_authorized(self, reference: str, amount: Decimal) -> bool:
        """
        Is the payment behind `reference` authorized for `amount`?

        Args:
            reference: Gateway reference sent by the client (payment intent id)
            amount: Order total

        Returns:
            True when the order may proceed
        """
        ...
