"""
Configuration Module for Cafe Orders
====================================

This module centralizes all configuration settings, environment variables, and
constants used by the checkout and order lifecycle engine. Values are parsed
once at import time; tests override the module attributes directly.

Configuration Categories:
-------------------------
- **Database**: Connection URL for the order store.

- **Billing**: Tax component rates and the tip interpretation threshold.

- **Lifecycle**: Default auto-advance durations for each non-terminal order
  status, and the retry policy for lifecycle writes.

- **Order Numbers**: First human-facing order number handed out.

- **Rate Limiting / Sessions**: Chat endpoint throttling and the in-memory
  conversational checkout session cache.

- **Staff Authentication**: Credentials for the staff order surface.

- **Text Generation**: OpenAI model used to phrase conversational prompts.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./cafe_orders.db")
- SGST_RATE / CGST_RATE: Tax component rates (default: 0.025 each)
- TIP_PERCENT_THRESHOLD: Tip values at or below this are percentages (default: 10)
- PLACED_DURATION_SECONDS: Placed -> InPreparation delay (default: 30)
- PREPARATION_DURATION_SECONDS: InPreparation -> Completed delay (default: 240)
- SYNC_RETRY_ATTEMPTS / SYNC_RETRY_BASE_DELAY / SYNC_RETRY_MAX_DELAY
- ORDER_NUMBER_START: First order number (default: 1001)
- RATE_LIMIT_CHAT / RATE_LIMIT_ENABLED
- CHECKOUT_SESSION_TTL_SECONDS / CHECKOUT_SESSION_MAX_CACHE_SIZE
- STAFF_USERNAME / STAFF_PASSWORD
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- OPENAI_API_KEY / OPENAI_MODEL / LLM_COPY_ENABLED

Usage:
------
    from cafe_orders.config import SGST_RATE, PLACED_DURATION_SECONDS
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env from the project root (one level above cafe_orders/)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


# =============================================================================
# Database Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./cafe_orders.db")


# =============================================================================
# Billing Configuration
# =============================================================================
# Two independent flat-rate components, both applied to the pre-tax subtotal.

SGST_RATE: float = float(os.getenv("SGST_RATE", "0.025"))
CGST_RATE: float = float(os.getenv("CGST_RATE", "0.025"))

# A bare tip number at or below this value is a percentage of the taxed
# subtotal; anything above it is an absolute amount. A flat tip of exactly
# the threshold (or less) cannot be expressed.
TIP_PERCENT_THRESHOLD: float = float(os.getenv("TIP_PERCENT_THRESHOLD", "10"))

PAYMENT_METHODS: List[str] = ["upi", "card", "wallet", "cash"]


# =============================================================================
# Lifecycle Configuration
# =============================================================================

PLACED_DURATION_SECONDS: int = int(os.getenv("PLACED_DURATION_SECONDS", "30"))
PREPARATION_DURATION_SECONDS: int = int(os.getenv("PREPARATION_DURATION_SECONDS", "240"))

# Lifecycle writes are retried with exponential backoff before the order is
# flagged as out of sync on the staff surface.
SYNC_RETRY_ATTEMPTS: int = int(os.getenv("SYNC_RETRY_ATTEMPTS", "3"))
SYNC_RETRY_BASE_DELAY: float = float(os.getenv("SYNC_RETRY_BASE_DELAY", "0.5"))
SYNC_RETRY_MAX_DELAY: float = float(os.getenv("SYNC_RETRY_MAX_DELAY", "4.0"))


# =============================================================================
# Order Number Configuration
# =============================================================================

ORDER_NUMBER_START: int = int(os.getenv("ORDER_NUMBER_START", "1001"))


# =============================================================================
# Rate Limiting Configuration
# =============================================================================

RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "30 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_chat() -> str:
    """
    Return the current chat rate limit.

    This function allows dynamic override in tests without modifying
    the module-level constant.
    """
    return RATE_LIMIT_CHAT


# =============================================================================
# Checkout Session Configuration
# =============================================================================
# Conversational checkout sessions live only in memory; an abandoned session
# simply expires and its selection is discarded.

CHECKOUT_SESSION_TTL_SECONDS: int = int(os.getenv("CHECKOUT_SESSION_TTL_SECONDS", "1800"))
CHECKOUT_SESSION_MAX_CACHE_SIZE: int = int(os.getenv("CHECKOUT_SESSION_MAX_CACHE_SIZE", "1000"))

# Maximum allowed chat message length in characters
MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "500"))


# =============================================================================
# CORS Configuration
# =============================================================================

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]


# =============================================================================
# Staff Authentication Configuration
# =============================================================================
# Credentials for HTTP Basic Auth on the staff order endpoints.
# STAFF_PASSWORD must be set for the staff surface to work at all.

STAFF_USERNAME: str = os.getenv("STAFF_USERNAME", "staff")
STAFF_PASSWORD: str = os.getenv("STAFF_PASSWORD", "")


# =============================================================================
# Text Generation Configuration
# =============================================================================
# The language model only phrases prompts. When disabled or unconfigured the
# conversational checkout uses its canned copy.

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
LLM_COPY_ENABLED: bool = os.getenv("LLM_COPY_ENABLED", "true").lower() == "true"
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "300"))
