"""
Factory for creating GeoIP instances.
Same shape as the cache factory: singleton, settings-driven, and any
construction failure degrades to NullGeoIp.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from .strategies import GeoIpStrategy, FileGeoIp, HttpGeoIp, NullGeoIp
from shortlink_app.config import settings
from shortlink_app.resilient import build_with_fallback

logger = logging.getLogger(__name__)


class GeoIpBackend(Enum):
    """Available GeoIP backends"""
    FILE = "file"
    HTTP = "http"
    NULL = "null"


async def _open_http() -> HttpGeoIp:
    geoip = HttpGeoIp(settings.geoip_http_url, timeout=settings.geoip_timeout)
    # requests blocks; keep the probe off the event loop
    await asyncio.to_thread(geoip.probe)
    return geoip


class GeoIpFactory:
    """Singleton factory for GeoIP lookups"""

    _instance: Optional[GeoIpStrategy] = None

    @classmethod
    async def create(cls, backend: GeoIpBackend) -> GeoIpStrategy:
        """
        Create or return cached GeoIP instance.

        Args:
            backend: Type of GeoIP backend (from enum)

        Returns:
            Singleton GeoIP instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == GeoIpBackend.FILE:
            cls._instance = await build_with_fallback(
                f"GeoIP database {settings.geoip_db_path}",
                lambda: FileGeoIp(settings.geoip_db_path),
                NullGeoIp,
            )
        elif backend == GeoIpBackend.HTTP:
            cls._instance = await build_with_fallback(
                f"GeoIP service {settings.geoip_http_url}", _open_http, NullGeoIp
            )
        elif backend == GeoIpBackend.NULL:
            cls._instance = NullGeoIp()
            logger.info("GeoIP disabled, using NullGeoIp")
        else:
            raise ValueError(f"Unknown GeoIP backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
