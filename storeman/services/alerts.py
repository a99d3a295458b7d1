"""
Stock alerts — find holders at or below their low-stock threshold.

Usage:
    from storeman.services.alerts import check_low_stock

    # Run periodically (cron) or after restocking
    low = check_low_stock()
    # Returns list of (Product|Variant, quantity) tuples
"""

import logging

from storeman.services.queries import StockQueries

logger = logging.getLogger('storeman')


def check_low_stock(product=None) -> list[tuple[object, int]]:
    """
    Tracked holders whose quantity is at or below low_stock_threshold.

    Only counters in use are checked: product-level products and the real
    variants of variant-level products. Untracked products never alert.

    Args:
        product: Optional product to check (None = all).

    Returns:
        List of (holder object, quantity) tuples.
    """
    triggered = []
    for level, obj in StockQueries.tracked_holders(product):
        if obj.quantity > obj.low_stock_threshold:
            continue
        triggered.append((obj, obj.quantity))
        logger.warning(
            "stock.low",
            extra={
                "level": level,
                "holder_id": obj.pk,
                "quantity": obj.quantity,
                "threshold": obj.low_stock_threshold,
            },
        )
    return triggered
