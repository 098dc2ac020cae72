"""
Routes Package for Cafe Bot
===========================

API route definitions organized by audience. Each module defines a FastAPI
APIRouter.

**Customer-Facing Routes:**
- chat.py: Conversation endpoints (start, input, finalize)
- orders.py: Order details, QR payload, cancellation, order history

**Seller Routes (require authentication):**
- seller.py: Token verification at the pickup counter
- admin_orders.py: Order list and details

Router Registration:
--------------------
All routers are registered in main.py under two prefixes:
1. /api/v1/* - Versioned API (recommended)
2. /* - Root paths

Error Handling:
---------------
Routes let domain errors (cafe_bot.errors) propagate; the exception handler
in main.py renders them as {"error", "detail", "retryable"} with the status
code for each error kind.
"""

from .chat import chat_router, limiter
from .orders import orders_router
from .seller import seller_router
from .admin_orders import admin_orders_router

__all__ = [
    "chat_router",
    "limiter",
    "orders_router",
    "seller_router",
    "admin_orders_router",
]
