"""
Storeman services — modular organization of stock, pickup and order operations.

Re-exports the service classes:
    from storeman.services import StockQueries, StockMovements, OrderFulfillment
"""

from storeman.services.movements import StockMovements
from storeman.services.orders import OrderFulfillment
from storeman.services.queries import StockQueries

__all__ = [
    'StockQueries',
    'StockMovements',
    'OrderFulfillment',
]
