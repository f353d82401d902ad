"""
FastAPI application for Cafe Orders.

create_app() builds the app around an AppServices instance. The module-level
`app` uses the configured database; tests call create_app() with their own
services.

Run with:
    uvicorn cafe_orders.main:app --reload
or:
    python run_server.py
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from . import config, db
from .llm_client import get_text_generator
from .logging_config import bind_request_id, reset_request_id, setup_logging
from .routes import checkout_router, limiter, orders_router, staff_orders_router
from .services.container import AppServices, build_services

setup_logging()
logger = logging.getLogger(__name__)


# ---------- Request ID Middleware ----------
# Adds a unique request ID to each request for debugging and log correlation


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.
    The ID is available in request.state.request_id, stamped on every log line
    written while handling the request and returned in X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Pre-built services. When omitted, services are built on the
                  configured database and its tables are created at startup.
    """
    use_default_db = services is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if use_default_db:
            db.init_db()
            logger.info("Order tables ready")
        yield

    app = FastAPI(
        title="Cafe Orders API",
        description="Checkout and order lifecycle service",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Health check endpoints"},
            {"name": "Checkout", "description": "Form and conversational checkout"},
            {"name": "Orders", "description": "Customer order progress and history"},
            {"name": "Staff - Orders", "description": "Staff order management"},
        ],
    )

    app.state.services = services or build_services(
        db.SessionLocal,
        generator=get_text_generator(),
    )

    app.add_middleware(RequestIDMiddleware)

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(staff_orders_router)

    @app.get("/health", tags=["Health"])
    def health(session: Session = Depends(db.get_db)) -> Dict[str, str]:
        """Health check endpoint. Returns ok if the service and database respond."""
        session.execute(text("SELECT 1"))
        return {"status": "ok"}

    return app


app = create_app()
