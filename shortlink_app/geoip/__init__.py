"""
GeoIP module for access history enrichment.
Implements Strategy Pattern with a null fallback.
"""

from .strategies import GeoIpInfo, GeoIpStrategy, FileGeoIp, HttpGeoIp, NullGeoIp
from .factory import GeoIpFactory, GeoIpBackend

__all__ = [
    "GeoIpInfo",
    "GeoIpStrategy",
    "FileGeoIp",
    "HttpGeoIp",
    "NullGeoIp",
    "GeoIpFactory",
    "GeoIpBackend",
]
