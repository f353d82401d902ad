"""
Checkout Orchestrator
=====================

Owns the checkout step sequence shared by both surfaces:

    begin -> choose_payment_method -> choose_tip -> choose_split -> confirm

Each step method checks the session is at the right step, records the
choice, and moves the session one step forward. The form surface calls all
of them in one request; the conversational surface calls one per message.
Neither surface does any arithmetic: quote() and confirm() both go through
calculate_bill().

Order Creation:
---------------
confirm() builds the order from the recomputed bill and the selection and
hands it to the order store. Only a successful create finalizes the
session. If the store rejects or fails the write, the session is marked
ABORTED, the cart is left untouched, and the error propagates.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import CheckoutPreconditionError, OrderError, OrderValidationError
from ..lifecycle.engine import LifecycleEngine
from ..lifecycle.states import utcnow
from ..schemas.orders import OrderRecord
from ..services.billing import BillBreakdown, CartLine, TipSpec, calculate_bill
from ..services.order_store import NewOrder, OrderStore
from .messages import CheckoutMessages
from .models import CheckoutSession, PaymentMethod
from .steps import CheckoutStep

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    """
    Drives a CheckoutSession through the checkout steps.

    Args:
        store: Where confirmed orders are created
        engine: Supplies the lifecycle fields of a new order
        clock: Current UTC time
    """

    def __init__(
        self,
        store: OrderStore,
        engine: LifecycleEngine,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.engine = engine
        self.clock = clock

    def new_session(
        self,
        customer_id: Optional[str],
        cart: List[CartLine],
        customer_name: Optional[str] = None,
        discount: float = 0.0,
    ) -> CheckoutSession:
        return CheckoutSession(
            customer_id=customer_id,
            customer_name=customer_name,
            cart=list(cart),
            discount=discount,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def begin(self, session: CheckoutSession) -> CheckoutSession:
        """
        Enter the sequence at AWAITING_METHOD.

        Raises:
            CheckoutPreconditionError: If the customer is not signed in or the
                cart is empty. The session is left as it was.
        """
        if not (session.customer_id or "").strip():
            raise CheckoutPreconditionError(CheckoutMessages.NOT_SIGNED_IN)
        if not session.cart or not any(line.quantity >= 1 for line in session.cart):
            raise CheckoutPreconditionError(CheckoutMessages.EMPTY_CART)

        session.reset_selection()
        session.order_number = None
        session.step = CheckoutStep.AWAITING_METHOD
        logger.debug("Checkout %s started for customer %s", session.session_id, session.customer_id)
        return session

    def choose_payment_method(self, session: CheckoutSession, method) -> CheckoutSession:
        self._require_step(session, CheckoutStep.AWAITING_METHOD)
        try:
            session.selection.payment_method = PaymentMethod(method)
        except ValueError:
            raise OrderValidationError(f"Unknown payment method {method!r}")
        session.step = CheckoutStep.AWAITING_TIP
        return session

    def choose_tip(self, session: CheckoutSession, tip: TipSpec) -> CheckoutSession:
        self._require_step(session, CheckoutStep.AWAITING_TIP)
        session.selection.tip = tip
        session.step = CheckoutStep.AWAITING_SPLIT
        return session

    def choose_split(self, session: CheckoutSession, split_count: int) -> CheckoutSession:
        self._require_step(session, CheckoutStep.AWAITING_SPLIT)
        if split_count is None or int(split_count) < 1:
            raise OrderValidationError("split count must be at least 1")
        session.selection.split_count = int(split_count)
        session.step = CheckoutStep.AWAITING_CONFIRMATION
        return session

    def quote(self, session: CheckoutSession) -> BillBreakdown:
        """Bill for the session's cart and current selection."""
        selection = session.selection
        return calculate_bill(
            session.cart,
            discount=session.discount,
            tip=selection.tip,
            split_count=selection.split_count or 1,
        )

    def confirm(self, session: CheckoutSession) -> OrderRecord:
        """
        Create the order and finalize the session.

        Raises:
            OrderError / SQLAlchemyError: If the order could not be created.
                The session is ABORTED and no order exists.
        """
        self._require_step(session, CheckoutStep.AWAITING_CONFIRMATION)
        bill = self.quote(session)
        if bill.defects:
            logger.warning("Checkout %s bill had clamped components: %s",
                           session.session_id, ", ".join(bill.defects))

        now = self.clock()
        lifecycle = self.engine.initial_fields(now)
        data = NewOrder(
            customer_id=session.customer_id,
            customer_name=session.customer_name,
            items=session.cart,
            subtotal=bill.subtotal,
            sgst=bill.sgst,
            cgst=bill.cgst,
            discount=bill.discount,
            tip=bill.tip,
            total=bill.grand_total,
            per_person=bill.per_person,
            payment_method=session.selection.payment_method.value,
            split_count=bill.split_count,
            status=lifecycle["status"],
            status_deadline=lifecycle["status_deadline"],
            status_changed_at=lifecycle["status_changed_at"],
        )

        try:
            record = self.store.create_order(data)
        except (OrderError, SQLAlchemyError) as exc:
            session.step = CheckoutStep.ABORTED
            logger.error("Checkout %s aborted, order not created: %s", session.session_id, exc)
            raise

        session.step = CheckoutStep.FINALIZED
        session.order_number = record.order_number
        logger.info("Checkout %s finalized as order #%d", session.session_id, record.order_number)
        return record

    def abandon(self, session: CheckoutSession) -> CheckoutSession:
        """Drop the selection. The cart stays so checkout can be restarted."""
        session.reset_selection()
        session.step = CheckoutStep.ABANDONED
        logger.info("Checkout %s abandoned", session.session_id)
        return session

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_step(session: CheckoutSession, step: CheckoutStep) -> None:
        if session.step != step:
            raise CheckoutPreconditionError(
                f"Checkout is at {session.step.value}, expected {step.value}"
            )
