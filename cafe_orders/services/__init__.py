"""
Services Package for Cafe Orders
================================

Business logic and infrastructure shared by the checkout and lifecycle code.

Available Services:
-------------------
- **billing**: Bill calculation (subtotal, SGST/CGST, tip, discount, split)
- **order_store**: Order persistence and the change feed it publishes to
- **change_feed**: In-process publish/subscribe of order records
- **retry**: Bounded retry with exponential backoff
- **session**: In-memory conversational checkout sessions
- **container**: Wires the services together for the FastAPI app

Usage:
------
    from cafe_orders.services.billing import calculate_bill, TipSpec
    from cafe_orders.services.order_store import OrderStore
"""
