"""
Authentication Module for Cafe Bot
==================================

HTTP Basic Authentication for the seller-facing endpoints: token
verification at the counter and the order list.

Security Features:
------------------
- **Timing Attack Prevention**: credentials are compared with
  ``secrets.compare_digest()``, which takes constant time regardless of how
  many characters match.

- **Shared Realm**: all seller endpoints share one realm, so a browser asks
  for credentials once per session.

- **Fail Closed**: if SELLER_PASSWORD is not configured, seller endpoints
  return 503 Service Unavailable rather than allowing unauthenticated access.

Configuration:
--------------
Environment variables (see config.py):
- SELLER_USERNAME: Username for seller access (default: "seller")
- SELLER_PASSWORD: Password for seller access (required, no default)

Usage:
------
    from cafe_bot.auth import verify_seller_credentials

    @router.post("/seller/verify")
    def verify(
        req: VerifyRequest,
        seller: str = Depends(verify_seller_credentials),
    ):
        ...
"""

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from . import config


# =============================================================================
# HTTP Basic Auth Setup
# =============================================================================

security = HTTPBasic(realm="Cafe Bot Seller")


# =============================================================================
# Seller Authentication Dependency
# =============================================================================

def verify_seller_credentials(
    credentials: HTTPBasicCredentials = Depends(security),
) -> str:
    """
    Verify HTTP Basic Auth credentials for seller endpoints.

    Returns:
        str: The authenticated username.

    Raises:
        HTTPException (503): SELLER_PASSWORD is not set.
        HTTPException (401): Invalid credentials. Includes WWW-Authenticate
            so browsers show their native login prompt.
    """
    # Fail closed: if password not configured, deny all access
    if not config.SELLER_PASSWORD:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Seller authentication not configured. Set SELLER_PASSWORD environment variable.",
        )

    username_correct = secrets.compare_digest(
        credentials.username.encode("utf-8"),
        config.SELLER_USERNAME.encode("utf-8"),
    )
    password_correct = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        config.SELLER_PASSWORD.encode("utf-8"),
    )

    if not (username_correct and password_correct):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid seller credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username
