"""
GeoIP lookup strategies using Strategy Pattern.

Backends:
- FileGeoIp: local IP range database, loaded into memory at startup
- HttpGeoIp: remote JSON lookup service
- NullGeoIp: no lookups (GeoIP disabled or unavailable)
"""

import asyncio
import bisect
import ipaddress
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import requests

from shortlink_app.errors import (
    DatabaseNotFoundError,
    GeoIpError,
    InvalidIpAddressError,
    LookupFailedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoIpInfo:
    """Location details for an IP address; empty strings when unknown"""

    country: str = ""
    region: str = ""
    province: str = ""
    city: str = ""
    isp: str = ""

    @classmethod
    def empty(cls) -> "GeoIpInfo":
        return cls()

    def is_empty(self) -> bool:
        return not (self.country or self.region or self.province or self.city or self.isp)


def parse_region_string(region: str) -> GeoIpInfo:
    """
    Parse ``country|region|province|city|isp`` into GeoIpInfo.

    Missing trailing parts are empty; a region of "0" means unknown.
    """
    parts = [part.strip() for part in region.split("|")]
    parts += [""] * (5 - len(parts))
    country, area, province, city, isp = parts[:5]
    if area == "0":
        area = ""
    return GeoIpInfo(country=country, region=area, province=province, city=city, isp=isp)


def _parse_ip(ip: str):
    if not ip:
        raise InvalidIpAddressError("IP address is empty")
    try:
        return ipaddress.ip_address(ip)
    except ValueError as e:
        raise InvalidIpAddressError(f"Invalid IP address: {ip}") from e


class GeoIpStrategy(ABC):
    """Interface for IP geolocation backends"""

    @abstractmethod
    async def lookup(self, ip: str) -> GeoIpInfo:
        """
        Look up an IP address.

        Raises:
            InvalidIpAddressError: ip is empty or malformed
            LookupFailedError: backend could not answer
        """

    async def lookup_or_empty(self, ip: str) -> GeoIpInfo:
        """Look up an IP address, returning empty info on any failure"""
        try:
            return await self.lookup(ip)
        except GeoIpError as e:
            logger.warning("GeoIP lookup failed for IP %s, returning empty info: %s", ip, e)
        except Exception:
            logger.exception("GeoIP backend crashed for IP %s, returning empty info", ip)
        return GeoIpInfo.empty()


class FileGeoIp(GeoIpStrategy):
    """
    IP range database read from a text file.

    One range per line: ``start_ip|end_ip|country|region|province|city|isp``.
    Blank lines and lines starting with ``#`` are skipped. Ranges are kept
    sorted by start address and searched with bisect.
    """

    def __init__(self, db_path: str):
        path = Path(db_path)
        if not path.exists():
            raise DatabaseNotFoundError(f"Database file not found: {db_path}")

        self.db_path = str(path)
        self._starts: List[Tuple[int, int]] = []
        self._ranges: List[Tuple[int, int, GeoIpInfo]] = []
        self._load(path)
        logger.debug("Loaded %d IP ranges from %s", len(self._ranges), self.db_path)

    def _load(self, path: Path) -> None:
        rows = []
        with path.open(encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split("|", 2)
                if len(parts) < 3:
                    raise GeoIpError(f"{path}:{line_no}: expected start|end|region data")
                try:
                    start = ipaddress.ip_address(parts[0].strip())
                    end = ipaddress.ip_address(parts[1].strip())
                except ValueError as e:
                    raise GeoIpError(f"{path}:{line_no}: {e}") from e
                rows.append((start.version, int(start), int(end), parse_region_string(parts[2])))

        rows.sort(key=lambda row: (row[0], row[1]))
        self._starts = [(version, start) for version, start, _, _ in rows]
        self._ranges = [(version, end, info) for version, _, end, info in rows]

    async def lookup(self, ip: str) -> GeoIpInfo:
        address = _parse_ip(ip)
        key = (address.version, int(address))
        index = bisect.bisect_right(self._starts, key) - 1
        if index >= 0:
            version, end, info = self._ranges[index]
            if version == address.version and int(address) <= end:
                return info
        raise LookupFailedError(f"No range in {self.db_path} contains {ip}")


class HttpGeoIp(GeoIpStrategy):
    """
    Remote lookup against an ip-api style JSON endpoint:
    ``GET {base_url}/{ip}`` returning country, regionName, city and isp.
    """

    def __init__(self, base_url: str, timeout: float = 2.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def probe(self) -> None:
        """Fail fast at startup if the endpoint is unreachable"""
        response = self.session.get(self.base_url, timeout=self.timeout)
        response.raise_for_status()

    def _fetch(self, ip: str) -> dict:
        response = self.session.get(f"{self.base_url}/{ip}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def lookup(self, ip: str) -> GeoIpInfo:
        _parse_ip(ip)
        try:
            data = await asyncio.to_thread(self._fetch, ip)
        except (requests.RequestException, ValueError) as e:
            raise LookupFailedError(f"GeoIP request for {ip} failed: {e}") from e

        if not isinstance(data, dict):
            raise LookupFailedError(f"GeoIP service sent a non-object body for {ip}")

        if data.get("status") == "fail":
            raise LookupFailedError(f"GeoIP service rejected {ip}: {data.get('message', '')}")

        return GeoIpInfo(
            country=data.get("country") or "",
            region=data.get("regionName") or "",
            province=data.get("region") or "",
            city=data.get("city") or "",
            isp=data.get("isp") or "",
        )


class NullGeoIp(GeoIpStrategy):
    """
    Null Object Pattern - GeoIP that knows nothing.

    Every lookup succeeds with empty info.
    """

    async def lookup(self, ip: str) -> GeoIpInfo:
        return GeoIpInfo.empty()

    async def lookup_or_empty(self, ip: str) -> GeoIpInfo:
        return GeoIpInfo.empty()
