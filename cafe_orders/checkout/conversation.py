"""
Conversational checkout surface.

Free text in, one step at a time. At every step a deterministic parser
extracts the one token the step needs. Unrecognized input gets a re-prompt
and the session stays where it is. The text generator only phrases the
prompts; totals, quotes and order numbers are appended verbatim so the
generated copy can never change them.

Flow:
    "checkout" / "place order" / "buy"  -> payment method prompt
    payment method                       -> tip prompt
    tip                                  -> split prompt
    split count                          -> quote + confirmation prompt
    yes                                  -> order placed
    no                                   -> checkout abandoned (restart hint)
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import CheckoutPreconditionError, OrderError
from ..llm_client import CannedCopy
from .messages import CheckoutMessages, format_quote, method_chosen, order_placed, tip_chosen
from .models import CheckoutResult, CheckoutSession
from .orchestrator import CheckoutOrchestrator
from .parsers import (
    is_checkout_trigger,
    parse_confirmation,
    parse_payment_method,
    parse_split_count,
    parse_tip,
)
from .steps import ACTIVE_STEPS, CheckoutStep

logger = logging.getLogger(__name__)


class ConversationalCheckout:
    """
    Args:
        orchestrator: Shared checkout step logic
        generator: Text generator with generate(context) -> str; canned copy if omitted
    """

    def __init__(self, orchestrator: CheckoutOrchestrator, generator=None):
        self.orchestrator = orchestrator
        self.generator = generator or CannedCopy()

    def start(self, session: CheckoutSession) -> CheckoutResult:
        """
        Begin checkout and ask for the payment method.

        Raises:
            CheckoutPreconditionError: Not signed in, or empty cart
        """
        self.orchestrator.begin(session)
        return self._reply(session, CheckoutMessages.PAYMENT_METHOD)

    def handle(self, session: CheckoutSession, text: str) -> CheckoutResult:
        """Process one customer message."""
        session.add_message("user", text)

        if session.step not in ACTIVE_STEPS:
            if not is_checkout_trigger(text):
                return self._reply(session, CheckoutMessages.NOT_IN_CHECKOUT, accepted=False)
            try:
                return self.start(session)
            except CheckoutPreconditionError as exc:
                return self._reply(session, str(exc), accepted=False, error=str(exc))

        if session.step == CheckoutStep.AWAITING_METHOD:
            return self._handle_method(session, text)
        if session.step == CheckoutStep.AWAITING_TIP:
            return self._handle_tip(session, text)
        if session.step == CheckoutStep.AWAITING_SPLIT:
            return self._handle_split(session, text)
        return self._handle_confirmation(session, text)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _handle_method(self, session: CheckoutSession, text: str) -> CheckoutResult:
        method = parse_payment_method(text)
        if method is None:
            logger.debug("Unrecognized payment method %r, re-prompting", text)
            return self._reply(session, CheckoutMessages.PAYMENT_METHOD_RETRY, accepted=False)
        self.orchestrator.choose_payment_method(session, method)
        return self._reply(session, method_chosen(session.selection))

    def _handle_tip(self, session: CheckoutSession, text: str) -> CheckoutResult:
        tip = parse_tip(text)
        if tip is None:
            logger.debug("Unrecognized tip %r, re-prompting", text)
            return self._reply(session, CheckoutMessages.TIP_RETRY, accepted=False)
        self.orchestrator.choose_tip(session, tip)
        return self._reply(session, tip_chosen(tip))

    def _handle_split(self, session: CheckoutSession, text: str) -> CheckoutResult:
        count = parse_split_count(text)
        if count is None:
            logger.debug("Unrecognized split count %r, re-prompting", text)
            return self._reply(session, CheckoutMessages.SPLIT_RETRY, accepted=False)
        self.orchestrator.choose_split(session, count)
        bill = self.orchestrator.quote(session)
        return self._reply(
            session,
            CheckoutMessages.CONFIRM,
            bill=bill,
            prefix=format_quote(bill, session.selection),
        )

    def _handle_confirmation(self, session: CheckoutSession, text: str) -> CheckoutResult:
        answer = parse_confirmation(text)
        if answer is None:
            logger.debug("Unclear confirmation %r, re-prompting", text)
            return self._reply(session, CheckoutMessages.CONFIRM_RETRY, accepted=False)
        if answer is False:
            self.orchestrator.abandon(session)
            return self._reply(session, CheckoutMessages.ABANDONED)

        bill = self.orchestrator.quote(session)
        try:
            record = self.orchestrator.confirm(session)
        except (OrderError, SQLAlchemyError) as exc:
            return self._reply(session, CheckoutMessages.ABORTED, bill=bill, error=str(exc))

        return self._reply(
            session,
            order_placed(record.order_number, record.total),
            bill=bill,
            order=record,
            rephrase=False,
        )

    # -------------------------------------------------------------------------
    # Copy
    # -------------------------------------------------------------------------

    def _phrase(self, session: CheckoutSession, default_text: str) -> str:
        context: Dict[str, Any] = {
            "step": session.step.value,
            "default_text": default_text,
            "history": session.history,
        }
        return self.generator.generate(context) or default_text

    def _reply(
        self,
        session: CheckoutSession,
        default_text: str,
        accepted: bool = True,
        bill=None,
        order=None,
        error: Optional[str] = None,
        prefix: Optional[str] = None,
        rephrase: bool = True,
    ) -> CheckoutResult:
        text = self._phrase(session, default_text) if rephrase else default_text
        if prefix:
            text = f"{prefix}\n{text}"
        session.add_message("assistant", text)
        return CheckoutResult(
            message=text,
            step=session.step,
            accepted=accepted,
            bill=bill,
            order=order,
            error=error,
        )
