"""
Checkout Routes for Cafe Orders
===============================

Both checkout surfaces over HTTP.

Endpoints:
----------
- POST /checkout/quote: Form preview, returns the bill without creating anything
- POST /checkout/form: Form submit, creates the order when confirm is true
- POST /checkout/chat/start: Begin a conversational checkout
- POST /checkout/chat/message: Send one message in a conversational checkout

Rate Limiting:
--------------
The chat endpoints are limited per client IP (RATE_LIMIT_CHAT).

Error Handling:
---------------
- 400: Not signed in, empty cart, or out-of-order checkout step
- 404: Unknown or expired chat session
- 422: Invalid payment method or rejected order data
- 500: Order could not be saved (checkout is aborted, cart kept)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from ..config import RATE_LIMIT_ENABLED, get_rate_limit_chat
from ..errors import OrderError
from ..schemas.checkout import (
    ChatMessageRequest,
    ChatMessageResponse,
    ChatStartRequest,
    ChatStartResponse,
    CheckoutFormRequest,
    CheckoutFormResponse,
    QuoteResponse,
)
from ..services.container import AppServices, get_services
from .helpers import bill_to_out, cart_from_request, discount_from_request, http_error, order_to_out


logger = logging.getLogger(__name__)

checkout_router = APIRouter(prefix="/checkout", tags=["Checkout"])

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


def _new_session(services: AppServices, req):
    cart = cart_from_request(req)
    return services.orchestrator.new_session(
        customer_id=req.customer_id,
        customer_name=req.customer_name,
        cart=cart,
        discount=discount_from_request(req, cart),
    )


# =============================================================================
# Form Surface
# =============================================================================

@checkout_router.post("/quote", response_model=QuoteResponse)
def checkout_quote(
    req: CheckoutFormRequest,
    services: AppServices = Depends(get_services),
) -> QuoteResponse:
    """Preview the bill for the chosen method, tip and split."""
    session = _new_session(services, req)
    try:
        result = services.form.preview(session, req.payment_method, req.tip, req.split_count)
    except OrderError as exc:
        raise http_error(exc)
    return QuoteResponse(bill=bill_to_out(result.bill), message=result.message)


@checkout_router.post("/form", response_model=CheckoutFormResponse, status_code=status.HTTP_201_CREATED)
def checkout_form(
    req: CheckoutFormRequest,
    services: AppServices = Depends(get_services),
) -> CheckoutFormResponse:
    """Place an order from the checkout form."""
    session = _new_session(services, req)
    try:
        result = services.form.submit(
            session, req.payment_method, req.tip, req.split_count, confirm=req.confirm,
        )
    except OrderError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Order could not be saved. Please try again.",
        )

    order = order_to_out(result.order, services.engine) if result.order else None
    return CheckoutFormResponse(bill=bill_to_out(result.bill), message=result.message, order=order)


# =============================================================================
# Conversational Surface
# =============================================================================

@checkout_router.post("/chat/start", response_model=ChatStartResponse)
@limiter.limit(get_rate_limit_chat)
def chat_start(
    request: Request,
    req: ChatStartRequest,
    services: AppServices = Depends(get_services),
) -> ChatStartResponse:
    """Start a conversational checkout for the given cart."""
    session = _new_session(services, req)
    try:
        result = services.conversation.start(session)
    except OrderError as exc:
        raise http_error(exc)

    services.sessions.save(session)
    logger.info("Chat checkout started: %s (customer %s)", session.session_id[:8], session.customer_id)
    return ChatStartResponse(session_id=session.session_id, reply=result.message, step=result.step.value)


@checkout_router.post("/chat/message", response_model=ChatMessageResponse)
@limiter.limit(get_rate_limit_chat)
def chat_message(
    request: Request,
    req: ChatMessageRequest,
    services: AppServices = Depends(get_services),
) -> ChatMessageResponse:
    """Advance a conversational checkout by one message."""
    session = services.sessions.get(req.session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    result = services.conversation.handle(session, req.message)
    services.sessions.save(session)

    return ChatMessageResponse(
        reply=result.message,
        step=result.step.value,
        accepted=result.accepted,
        bill=bill_to_out(result.bill) if result.bill else None,
        order=order_to_out(result.order, services.engine) if result.order else None,
    )
