"""
Session Store for Cafe Bot
==========================

This module holds one conversation session per customer identity.

Implementations:
----------------
- **InMemorySessionStore**: a dict; for tests and single-process bots.
- **DatabaseSessionStore**: write-through cache over the ``customer_sessions``
  table so conversations survive a restart. Reads check the cache first and
  fall back to the database; writes go to the database and then the cache.
  The cache is bounded by SESSION_MAX_CACHE_SIZE with LRU eviction.

Idle Expiry:
------------
A session whose last activity is older than SESSION_IDLE_TIMEOUT_SECONDS is
treated as absent. Expiry is lazy: ``get()`` checks the timestamp and deletes
the stale session. Nothing sweeps the store in the background.

Per-Identity Serialization:
---------------------------
A read-modify-write of a session must hold ``store.locked(identity)``:

    with store.locked(identity):
        session = store.get(identity)
        ...
        store.save(session)

Two near-simultaneous add-on toggles from the same customer therefore run one
after the other instead of overwriting each other. Locks are re-entrant so a
locked step may call another locked operation for the same identity.

Thread Safety:
--------------
All cache and lock-table operations are protected by threading locks, since
FastAPI runs sync endpoints in a thread pool.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from ..config import SESSION_IDLE_TIMEOUT_SECONDS, SESSION_MAX_CACHE_SIZE
from ..models import CustomerSession
from ..tasks.models import ConversationSession, Customization
from ..tasks.schemas import CustomizationState
from .helpers import storage_guard


logger = logging.getLogger(__name__)


# =============================================================================
# Base Store
# =============================================================================

class SessionStore(ABC):
    """
    Keyed store of ConversationSession objects with lazy idle expiry.

    Sessions are copied in and out, so a caller can only change stored state
    through ``save()``.
    """

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.idle_timeout = SESSION_IDLE_TIMEOUT_SECONDS if idle_timeout is None else idle_timeout
        self._clock = clock
        # identity -> [lock, number of callers holding or waiting on it]
        self._locks: Dict[str, List] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def locked(self, identity: str) -> Iterator[None]:
        """
        Hold the per-identity lock for the duration of the block.

        The entry is dropped once no caller holds or waits on it.
        """
        with self._locks_guard:
            entry = self._locks.get(identity)
            if entry is None:
                entry = self._locks[identity] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[identity]

    def lock_count(self) -> int:
        """Number of identities with a live lock entry."""
        with self._locks_guard:
            return len(self._locks)

    def now(self) -> float:
        return self._clock()

    def is_expired(self, session: ConversationSession) -> bool:
        return self.now() - session.last_activity > self.idle_timeout

    def get(self, identity: str) -> Optional[ConversationSession]:
        """Return the live session for identity, or None if absent or expired."""
        session = self._load(identity)
        if session is None:
            return None
        if self.is_expired(session):
            logger.info(
                "Session %s expired after %.0fs idle",
                identity, self.now() - session.last_activity,
            )
            self._remove(identity)
            return None
        return session

    def save(self, session: ConversationSession) -> None:
        """Store the session and stamp its last activity."""
        session.last_activity = self.now()
        self._store(session.model_copy(deep=True))

    def delete(self, identity: str) -> None:
        self._remove(identity)

    @abstractmethod
    def _load(self, identity: str) -> Optional[ConversationSession]:
        """Return a copy of the stored session, ignoring expiry."""

    @abstractmethod
    def _store(self, session: ConversationSession) -> None:
        ...

    @abstractmethod
    def _remove(self, identity: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> int:
        """Drop every cached session. Returns how many were dropped."""


# =============================================================================
# In-Memory Store
# =============================================================================

class InMemorySessionStore(SessionStore):
    """Sessions kept in a dict; lost when the process exits."""

    def __init__(self, idle_timeout: Optional[float] = None, clock: Callable[[], float] = time.time):
        super().__init__(idle_timeout=idle_timeout, clock=clock)
        self._sessions: Dict[str, ConversationSession] = {}
        self._data_lock = threading.Lock()

    def _load(self, identity: str) -> Optional[ConversationSession]:
        with self._data_lock:
            session = self._sessions.get(identity)
            return session.model_copy(deep=True) if session else None

    def _store(self, session: ConversationSession) -> None:
        with self._data_lock:
            self._sessions[session.identity] = session

    def _remove(self, identity: str) -> None:
        with self._data_lock:
            self._sessions.pop(identity, None)

    def clear(self) -> int:
        with self._data_lock:
            count = len(self._sessions)
            self._sessions.clear()
        return count

    def __len__(self) -> int:
        return len(self._sessions)


# =============================================================================
# Database-Backed Store
# =============================================================================

def _row_to_session(row: CustomerSession) -> ConversationSession:
    customization = Customization(**row.customization) if row.customization else None
    return ConversationSession(
        identity=row.identity,
        state=CustomizationState(row.state),
        customization=customization,
        last_activity=row.last_activity,
    )


class DatabaseSessionStore(SessionStore):
    """
    Write-through cache over the ``customer_sessions`` table.

    Cache misses restore the session from the database. Sessions evicted from
    the cache stay in the database and are restored on next access.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        max_cache_size: Optional[int] = None,
    ):
        super().__init__(idle_timeout=idle_timeout, clock=clock)
        self._session_factory = session_factory
        self.max_cache_size = SESSION_MAX_CACHE_SIZE if max_cache_size is None else max_cache_size
        self._cache: "OrderedDict[str, ConversationSession]" = OrderedDict()
        self._cache_lock = threading.Lock()

    def _open(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        from .. import db as db_module
        return db_module.SessionLocal()

    # --- cache ---------------------------------------------------------------

    def _cache_put(self, session: ConversationSession) -> None:
        with self._cache_lock:
            self._cache[session.identity] = session
            self._cache.move_to_end(session.identity)
            if len(self._cache) > self.max_cache_size:
                # Evict the least recently used 10% (at least one)
                count = max(1, self.max_cache_size // 10)
                for _ in range(min(count, len(self._cache) - 1)):
                    self._cache.popitem(last=False)
                logger.debug("Evicted %d sessions from cache", count)

    def _cache_get(self, identity: str) -> Optional[ConversationSession]:
        with self._cache_lock:
            session = self._cache.get(identity)
            if session is None:
                return None
            self._cache.move_to_end(identity)
            return session.model_copy(deep=True)

    # --- storage -------------------------------------------------------------

    def _load(self, identity: str) -> Optional[ConversationSession]:
        cached = self._cache_get(identity)
        if cached is not None:
            return cached

        db = self._open()
        try:
            with storage_guard(db, "loading session"):
                row = db.query(CustomerSession).filter(CustomerSession.identity == identity).first()
                if row is None:
                    return None
                session = _row_to_session(row)
        finally:
            db.close()

        self._cache_put(session)
        return session.model_copy(deep=True)

    def _store(self, session: ConversationSession) -> None:
        customization = session.customization.model_dump() if session.customization else None
        db = self._open()
        try:
            with storage_guard(db, "saving session"):
                row = db.query(CustomerSession).filter(
                    CustomerSession.identity == session.identity
                ).first()
                if row:
                    row.state = session.state.value
                    row.customization = customization
                    row.last_activity = session.last_activity
                    flag_modified(row, "customization")
                else:
                    db.add(CustomerSession(
                        identity=session.identity,
                        state=session.state.value,
                        customization=customization,
                        last_activity=session.last_activity,
                    ))
                db.commit()
        finally:
            db.close()

        # Cache only what the database accepted
        self._cache_put(session)

    def _remove(self, identity: str) -> None:
        with self._cache_lock:
            self._cache.pop(identity, None)
        db = self._open()
        try:
            with storage_guard(db, "deleting session"):
                db.query(CustomerSession).filter(CustomerSession.identity == identity).delete()
                db.commit()
        finally:
            db.close()

    def clear(self) -> int:
        """Clear the in-memory cache. Does NOT affect database storage."""
        with self._cache_lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info("Cleared %d sessions from cache", count)
        return count

    def cache_size(self) -> int:
        with self._cache_lock:
            return len(self._cache)
