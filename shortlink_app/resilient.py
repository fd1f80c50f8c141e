"""
Real-backend-or-null construction shared by every optional backend.

Pattern: Null Object + Factory
- The factory tries to build the real backend (connect, open file, ping)
- Any failure is logged and the no-op implementation of the same
  interface is returned instead
- Callers only ever hold the abstract strategy type, so there is no
  "is the backend enabled?" branch anywhere in business logic

Used by CacheFactory (fallback: NullCache) and GeoIpFactory
(fallback: NullGeoIp).
"""

import inspect
import logging
from typing import Awaitable, Callable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def build_with_fallback(
    label: str,
    builder: Callable[[], Union[T, Awaitable[T]]],
    fallback: Callable[[], T],
) -> T:
    """
    Build a backend, degrading to its null implementation on failure.

    Args:
        label: Human readable backend name for log messages
        builder: Callable returning the backend (may be a coroutine function)
        fallback: Callable returning the no-op implementation

    Returns:
        The real backend, or the fallback if construction raised
    """
    try:
        instance = builder()
        if inspect.isawaitable(instance):
            instance = await instance
    except Exception as e:
        logger.warning("%s unavailable, falling back to no-op: %s", label, e)
        return fallback()

    logger.info("%s initialized", label)
    return instance
