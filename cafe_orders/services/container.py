"""
Service wiring for the FastAPI app.

build_services() assembles one instance of every collaborator the routes
need. The app keeps it on app.state.services; tests build their own with an
in-memory database, a fake clock and a no-op sleep.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request

from ..checkout.conversation import ConversationalCheckout
from ..checkout.form import FormCheckout
from ..checkout.orchestrator import CheckoutOrchestrator
from ..lifecycle.engine import LifecycleEngine
from ..lifecycle.states import utcnow
from ..lifecycle.sync import SyncMonitor
from .change_feed import ChangeFeed
from .order_store import OrderStore
from .retry import RetryPolicy
from .session import CheckoutSessionCache


@dataclass
class AppServices:
    clock: Callable[[], datetime]
    feed: ChangeFeed
    store: OrderStore
    sync_monitor: SyncMonitor
    engine: LifecycleEngine
    orchestrator: CheckoutOrchestrator
    form: FormCheckout
    conversation: ConversationalCheckout
    sessions: CheckoutSessionCache


def build_services(
    session_factory,
    clock: Callable[[], datetime] = utcnow,
    generator=None,
    retry_policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
    sessions: Optional[CheckoutSessionCache] = None,
) -> AppServices:
    """
    Args:
        session_factory: sessionmaker for the order database
        clock: Current UTC time
        generator: Text generator for conversational copy (canned copy if None)
        retry_policy: Backoff for lifecycle writes (from config if None)
        sleep: Used between retries
        sessions: Checkout session cache (a fresh one if None)
    """
    feed = ChangeFeed()
    store = OrderStore(session_factory, feed=feed, clock=clock)
    sync_monitor = SyncMonitor()
    engine = LifecycleEngine(
        store,
        clock=clock,
        retry_policy=retry_policy,
        sync_monitor=sync_monitor,
        sleep=sleep,
    )
    orchestrator = CheckoutOrchestrator(store, engine, clock=clock)
    return AppServices(
        clock=clock,
        feed=feed,
        store=store,
        sync_monitor=sync_monitor,
        engine=engine,
        orchestrator=orchestrator,
        form=FormCheckout(orchestrator),
        conversation=ConversationalCheckout(orchestrator, generator=generator),
        sessions=sessions or CheckoutSessionCache(),
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the app's services."""
    return request.app.state.services
