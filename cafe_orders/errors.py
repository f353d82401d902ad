"""
Exception types shared by the checkout and lifecycle code.

Routers translate these into HTTP responses; everything else lets them
propagate to the caller.
"""


class OrderError(Exception):
    """Base class for order checkout and lifecycle failures."""


class OrderValidationError(OrderError):
    """Order data was rejected before anything was written."""


class OrderNotFoundError(OrderError):
    """No order exists for the requested id or order number."""


class InvalidTransitionError(OrderError):
    """A lifecycle command is not allowed in the order's current state."""


class CheckoutPreconditionError(OrderError):
    """Checkout cannot start (not signed in, or nothing in the cart)."""


class SyncFailedError(OrderError):
    """A lifecycle write still failed after every retry."""

    def __init__(self, order_number: int, message: str):
        super().__init__(message)
        self.order_number = order_number
