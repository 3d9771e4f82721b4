"""
API v1 package initialization.

This module collects the v1 routers of the trade-in API.
"""

from src.api.v1.devices import router as devices_router
from src.api.v1.quotes import router as quotes_router
from src.api.v1.staff_catalog import router as staff_catalog_router
from src.api.v1.staff_clients import router as staff_clients_router
from src.api.v1.staff_orders import router as staff_orders_router
from src.api.v1.trade_in import router as trade_in_router

__all__ = [
    "devices_router",
    "quotes_router",
    "staff_catalog_router",
    "staff_clients_router",
    "staff_orders_router",
    "trade_in_router",
]
