"""
Configuration Module for Cafe Bot
=================================

This module centralizes all configuration settings, environment variables, and
constants used throughout the Cafe Bot application. Values are parsed once at
module load time; tests override them by patching the module attributes.

Configuration Categories:
-------------------------
- **Database**: Connection URL for orders, tokens, sessions and the catalog.

- **Session Management**: Idle timeout after which a conversation session is
  treated as absent, and the size bound of the in-memory session cache.

- **Ordering Rules**: Quantity bounds and the pickup-time estimate.

- **Redemption Tokens**: Entropy of the single-use tokens handed to customers
  as QR payloads.

- **Rate Limiting / Input Validation / CORS**: Same knobs as the other API
  services.

- **Seller Authentication**: Credentials for the seller-facing endpoints
  (token verification, order list).

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./cafe_bot.db")
- SESSION_IDLE_TIMEOUT_SECONDS: Session idle timeout (default: 1800)
- SESSION_MAX_CACHE_SIZE: Max cached sessions (default: 1000)
- MAX_QUANTITY: Largest quantity per drink (default: 6)
- TOKEN_BYTES: Random bytes per redemption token (default: 32)
- PICKUP_BASE_MINUTES: Pickup estimate for one drink (default: 10)
- PICKUP_MINUTES_PER_DRINK: Extra minutes per additional drink (default: 2)
- RATE_LIMIT_CHAT: Chat endpoint rate limit (default: "30 per minute")
- RATE_LIMIT_ENABLED: Enable/disable rate limiting (default: "true")
- MAX_MESSAGE_LENGTH: Max user message length (default: 200)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- SELLER_USERNAME: Seller endpoints username (default: "seller")
- SELLER_PASSWORD: Seller endpoints password (required for seller access)

Usage:
------
    from cafe_bot.config import (
        SESSION_IDLE_TIMEOUT_SECONDS,
        MAX_QUANTITY,
        TOKEN_BYTES,
    )
"""

import os
from typing import List


# =============================================================================
# Database Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./cafe_bot.db")


# =============================================================================
# Session Management Configuration
# =============================================================================
# Sessions idle for longer than the timeout are treated as absent on next
# access. Expiry is checked lazily; nothing sweeps the store in the background.

SESSION_IDLE_TIMEOUT_SECONDS: int = int(os.getenv("SESSION_IDLE_TIMEOUT_SECONDS", "1800"))  # 30 minutes

# Maximum number of sessions kept in the in-memory write-through cache
SESSION_MAX_CACHE_SIZE: int = int(os.getenv("SESSION_MAX_CACHE_SIZE", "1000"))


# =============================================================================
# Ordering Rules
# =============================================================================

MIN_QUANTITY: int = 1
MAX_QUANTITY: int = int(os.getenv("MAX_QUANTITY", "6"))

# Levels offered for sugar and ice, in display order
LEVEL_CHOICES: List[str] = ["none", "low", "medium", "high"]

# Categories that take an ice level; everything else (i.e. "hot") does not
ICED_CATEGORIES = frozenset({"iced", "frappe"})

# Pickup estimate: base time for the first drink plus a fixed amount per extra drink
PICKUP_BASE_MINUTES: int = int(os.getenv("PICKUP_BASE_MINUTES", "10"))
PICKUP_MINUTES_PER_DRINK: int = int(os.getenv("PICKUP_MINUTES_PER_DRINK", "2"))


# =============================================================================
# Redemption Token Configuration
# =============================================================================
# Tokens are secrets, not display identifiers. 32 bytes from the OS CSPRNG
# encode to a 43 character URL-safe string.

TOKEN_BYTES: int = int(os.getenv("TOKEN_BYTES", "32"))

# Number of token characters that may appear in logs
TOKEN_LOG_PREFIX: int = 6


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
# Input Validation Configuration
# =============================================================================

# Keyboard captions are short; anything longer is not a valid button press
MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "200"))


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
# Seller Authentication Configuration
# =============================================================================
# Credentials for HTTP Basic Auth on seller endpoints (QR verification and the
# order list). SELLER_PASSWORD must be set for those endpoints to work.

SELLER_USERNAME: str = os.getenv("SELLER_USERNAME", "seller")
SELLER_PASSWORD: str = os.getenv("SELLER_PASSWORD", "")
