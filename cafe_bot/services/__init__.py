"""
Services Package for Cafe Bot
=============================

Service modules that hold the ordering engine's business logic.

Available Services:
-------------------
- **session**: Session stores (in-memory and database-backed write-through cache)
- **order**: Order persistence, token minting and status transitions
- **redemption**: At-most-once token redemption
- **ordering**: Facade used by routes and bots
- **helpers**: Shared storage utilities

Design Philosophy:
------------------
1. **Dependency Injection**: Services receive their dependencies (database
   sessions, catalog, session store) rather than creating them internally.

2. **Testability**: Stores and catalogs have in-memory implementations, so
   the conversation flow can be tested without a database.

3. **Stateless When Possible**: Order and redemption services are plain
   functions taking a database session. The session store is the one
   stateful component and documents its locking.

Usage:
------
    from cafe_bot.services import order, redemption
    from cafe_bot.services.ordering import OrderingService
"""

from . import helpers
from . import session
from . import order
from . import redemption

__all__ = ["helpers", "session", "order", "redemption"]
