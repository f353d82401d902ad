"""
Form checkout surface.

The form collects payment method, tip and split count in one go, shows the
quote, and places the order on a single confirm action. It walks the same
orchestrator steps as the conversation, so both surfaces produce the same
bill and the same order for the same choices.

Tip input is a number: one of the presets (0 = "No Tip", 5, 10) or a custom
value. Every value goes through TipSpec.from_value. A split count below 1 is
clamped to 1 rather than rejected.
"""

import logging

from ..services.billing import TipSpec
from .messages import CheckoutMessages, format_quote, order_placed
from .models import CheckoutResult, CheckoutSession
from .orchestrator import CheckoutOrchestrator
from .steps import CheckoutStep

logger = logging.getLogger(__name__)


def tip_from_form(tip_value) -> TipSpec:
    if tip_value is None or float(tip_value) <= 0:
        return TipSpec.none()
    return TipSpec.from_value(float(tip_value))


def split_from_form(split_count) -> int:
    try:
        return max(1, int(split_count))
    except (TypeError, ValueError):
        return 1


class FormCheckout:
    def __init__(self, orchestrator: CheckoutOrchestrator):
        self.orchestrator = orchestrator

    def _fill(self, session: CheckoutSession, payment_method, tip_value, split_count) -> None:
        orch = self.orchestrator
        orch.begin(session)
        orch.choose_payment_method(session, payment_method)
        orch.choose_tip(session, tip_from_form(tip_value))
        orch.choose_split(session, split_from_form(split_count))

    def preview(self, session: CheckoutSession, payment_method, tip_value=0, split_count=1) -> CheckoutResult:
        """Fill the whole selection and return the quote, awaiting confirmation."""
        self._fill(session, payment_method, tip_value, split_count)
        bill = self.orchestrator.quote(session)
        return CheckoutResult(
            message=f"{format_quote(bill, session.selection)}\n{CheckoutMessages.CONFIRM}",
            step=session.step,
            bill=bill,
        )

    def submit(self, session: CheckoutSession, payment_method, tip_value=0, split_count=1, confirm=True) -> CheckoutResult:
        """
        Fill the selection and, if confirm is set, place the order.

        With confirm=False the selection is discarded and nothing is created.
        Errors from order creation propagate; the session is left ABORTED.
        """
        result = self.preview(session, payment_method, tip_value, split_count)
        if not confirm:
            self.orchestrator.abandon(session)
            return CheckoutResult(message=CheckoutMessages.ABANDONED, step=session.step, bill=result.bill)

        record = self.orchestrator.confirm(session)
        return CheckoutResult(
            message=order_placed(record.order_number, record.total),
            step=CheckoutStep.FINALIZED,
            bill=result.bill,
            order=record,
        )
