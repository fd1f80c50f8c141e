"""
FastAPI dependencies for dependency injection.

This module provides the process-wide cache, GeoIP backend, token store
and background task set, and builds the services routes depend on.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (override get_cache / get_geoip / get_db in app.dependency_overrides)
- Flexible (swap implementations via config)
"""

import secrets
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from shortlink_app.auth.token_store import TokenStore
from shortlink_app.cache.factory import CacheFactory, CacheBackend
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.database.connection import SessionLocal, get_db
from shortlink_app.errors import UnauthorizedError
from shortlink_app.geoip.factory import GeoIpFactory, GeoIpBackend
from shortlink_app.geoip.strategies import GeoIpStrategy
from shortlink_app.services.access_recorder import AccessRecorder, TaskSet, background_tasks
from shortlink_app.services.history_service import HistoryService
from shortlink_app.services.url_service import URLService

API_KEY_PRINCIPAL = "api-key"


async def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    The app lifespan builds it at startup; this returns the instance the
    factory already holds.
    """
    return await CacheFactory.create(CacheBackend(settings.cache_backend))


async def get_geoip() -> GeoIpStrategy:
    """Get GeoIP instance (singleton)"""
    return await GeoIpFactory.create(GeoIpBackend(settings.geoip_backend))


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request"""
    return SessionLocal


def get_task_set() -> TaskSet:
    return background_tasks


@lru_cache()
def get_token_store() -> TokenStore:
    return TokenStore(ttl=settings.token_ttl)


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
) -> URLService:
    """
    Get URLService with all dependencies injected.

    Controller depends on service, service depends on infrastructure
    (db, cache).
    """
    return URLService(db=db, cache=cache)


def get_history_service(
    db: Session = Depends(get_db),
    geoip: GeoIpStrategy = Depends(get_geoip),
) -> HistoryService:
    return HistoryService(db=db, geoip=geoip)


def get_access_recorder(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    geoip: GeoIpStrategy = Depends(get_geoip),
    tasks: TaskSet = Depends(get_task_set),
) -> AccessRecorder:
    return AccessRecorder(session_factory=session_factory, geoip=geoip, tasks=tasks)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def require_auth(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None),
    tokens: TokenStore = Depends(get_token_store),
) -> str:
    """
    Accept a login token (Authorization: Bearer ...) or the API key
    (X-API-KEY). Returns the authenticated principal's name.
    """
    token = bearer_token(authorization)
    if token:
        return tokens.verify(token)

    if x_api_key and secrets.compare_digest(x_api_key.encode(), settings.api_key.encode()):
        return API_KEY_PRINCIPAL

    raise UnauthorizedError("Missing or invalid credentials")