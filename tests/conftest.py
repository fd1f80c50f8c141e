"""
Shared fixtures: a throwaway SQLite database, an in-memory cache, a null
GeoIP backend and a TestClient wired to all three.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.config import settings
from shortlink_app.database.connection import Base, get_db, make_engine
from shortlink_app.dependencies import get_cache, get_geoip, get_session_factory
from shortlink_app.geoip.strategies import NullGeoIp

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Session on freshly created tables, dropped again after the test.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def cache():
    return InMemoryCache()


@pytest.fixture(scope="function")
def geoip():
    """GeoIP backend the app uses; tests may swap in their own stub"""
    return NullGeoIp()


@pytest.fixture(scope="function")
def client(db_session, cache, geoip, monkeypatch):
    """
    TestClient with database, cache, GeoIP and session factory overridden.
    """
    # Startup builds the configured backends; keep it off the network
    monkeypatch.setattr(settings, "cache_backend", "memory")
    monkeypatch.setattr(settings, "geoip_backend", "null")

    def override_get_db():
        yield db_session

    async def override_get_cache():
        return cache

    async def override_get_geoip():
        return geoip

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache
    app.dependency_overrides[get_geoip] = override_get_geoip
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal

    # Context manager runs the lifespan, so background tasks are drained on exit
    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-API-KEY": settings.api_key}


@pytest.fixture
def session_factory():
    """Session factory bound to the test database"""
    return TestingSessionLocal
