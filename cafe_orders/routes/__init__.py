"""
Routes Package for Cafe Orders
==============================

API route definitions organized by surface. Each module defines a FastAPI
APIRouter.

**Customer-Facing Routes:**
- checkout.py: Form and conversational checkout
- orders.py: Order progress and order history

**Staff Routes (require authentication):**
- staff_orders.py: Order list, pause/resume, status override, prep time

Route Dependencies:
-------------------
- get_services: The app's order store, lifecycle engine and checkout surfaces
- verify_staff_credentials: Staff authentication
- limiter.limit(): Rate limiting on the chat endpoints

Usage:
------
    from cafe_orders.routes import checkout_router, orders_router, staff_orders_router

    app.include_router(checkout_router)
"""

from .checkout import checkout_router, limiter
from .orders import orders_router
from .staff_orders import staff_orders_router

__all__ = [
    "checkout_router",
    "orders_router",
    "staff_orders_router",
    "limiter",
]
