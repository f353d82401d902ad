from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cafe_orders.config as config_mod
import cafe_orders.db as db
from cafe_orders.main import create_app
from cafe_orders.models import Base
from cafe_orders.routes import limiter
from cafe_orders.services.billing import CartLine
from cafe_orders.services.container import build_services
from cafe_orders.services.retry import RetryPolicy

# Test staff credentials
TEST_STAFF_USERNAME = "teststaff"
TEST_STAFF_PASSWORD = "testpassword123"

START_TIME = datetime(2026, 3, 14, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable UTC clock shared by the store, engine and observers in a test."""

    def __init__(self, start: datetime = START_TIME):
        self.start = start
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def at(self, seconds: float) -> datetime:
        """Jump to `seconds` after the start time."""
        self.now = self.start + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory():
    """In-memory SQLite database.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def sleeps():
    """Records retry backoff delays instead of sleeping."""
    return []


@pytest.fixture
def services(session_factory, clock, sleeps):
    return build_services(
        session_factory,
        clock=clock,
        retry_policy=RetryPolicy(attempts=3, base_delay=0.5, max_delay=4.0),
        sleep=sleeps.append,
    )


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def engine(services):
    return services.engine


@pytest.fixture
def cart():
    """Cart with a subtotal of exactly 500."""
    return [
        CartLine(item_id="cappuccino", name="Cappuccino", unit_price=150.0, quantity=2),
        CartLine(item_id="club-sandwich", name="Club Sandwich", unit_price=200.0, quantity=1),
    ]


@pytest.fixture
def cart_payload():
    return [
        {"item_id": "cappuccino", "name": "Cappuccino", "unit_price": 150.0, "quantity": 2},
        {"item_id": "club-sandwich", "name": "Club Sandwich", "unit_price": 200.0, "quantity": 1},
    ]


@pytest.fixture
def client(services, session_factory, monkeypatch):
    """FastAPI TestClient wired to the in-memory database and fake clock.

    Sets up test staff credentials and turns rate limiting off.
    """
    monkeypatch.setattr(config_mod, "STAFF_USERNAME", TEST_STAFF_USERNAME)
    monkeypatch.setattr(config_mod, "STAFF_PASSWORD", TEST_STAFF_PASSWORD)
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_app(services=services)

    def override_get_db():
        db_sess = session_factory()
        try:
            yield db_sess
        finally:
            db_sess.close()

    app.dependency_overrides[db.get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def staff_auth():
    """Returns HTTP Basic Auth tuple for staff endpoints."""
    return (TEST_STAFF_USERNAME, TEST_STAFF_PASSWORD)


@pytest.fixture
def place_order(services, cart):
    """Places an order through the form surface and returns its record."""

    def _place(customer_id="cust-1", payment_method="upi", tip=0, split_count=1, lines=None):
        session = services.orchestrator.new_session(customer_id, lines or cart)
        result = services.form.submit(session, payment_method, tip, split_count)
        return result.order

    return _place
