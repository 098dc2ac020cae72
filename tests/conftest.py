import os

# Point the application at an in-memory database before cafe_bot.db is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cafe_bot.config as config_mod
import cafe_bot.db as db
from cafe_bot.catalog import StaticCatalog
from cafe_bot.main import app
from cafe_bot.models import Base
from cafe_bot.routes.chat import limiter
from cafe_bot.seed_menu import seed_menu
from cafe_bot.services.ordering import OrderingService, reset_ordering_service
from cafe_bot.services.session import DatabaseSessionStore, InMemorySessionStore
from tests.test_helpers import sample_products

# Test seller credentials
TEST_SELLER_USERNAME = "testseller"
TEST_SELLER_PASSWORD = "testpassword123"


@pytest.fixture
def catalog():
    """Dict-backed catalog holding the sample menu."""
    return StaticCatalog(sample_products())


@pytest.fixture
def session_factory():
    """In-memory SQLite shared by every session (StaticPool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def service(catalog, session_factory):
    """OrderingService over the static catalog, an in-memory store and the test database."""
    return OrderingService(
        catalog=catalog,
        store=InMemorySessionStore(),
        session_factory=session_factory,
    )


@pytest.fixture
def client(session_factory, monkeypatch):
    """Shared FastAPI TestClient using an in-memory SQLite DB seeded with the sample menu."""
    monkeypatch.setattr(config_mod, "SELLER_USERNAME", TEST_SELLER_USERNAME)
    monkeypatch.setattr(config_mod, "SELLER_PASSWORD", TEST_SELLER_PASSWORD)

    # Patch the db module used by the app
    monkeypatch.setattr(db, "SessionLocal", session_factory)

    session = session_factory()
    seed_menu(session)
    session.close()

    # Override FastAPI DB dependency
    def override_get_db():
        db_sess = session_factory()
        try:
            yield db_sess
        finally:
            db_sess.close()

    app.dependency_overrides[db.get_db] = override_get_db
    limiter.enabled = False
    reset_ordering_service(OrderingService(
        store=DatabaseSessionStore(session_factory=session_factory),
        session_factory=session_factory,
    ))

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_ordering_service()


@pytest.fixture
def seller_auth():
    """Returns HTTP Basic Auth tuple for seller endpoints."""
    return (TEST_SELLER_USERNAME, TEST_SELLER_PASSWORD)
