import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from shortlink_app.geoip.strategies import GeoIpStrategy, NullGeoIp
from shortlink_app.repositories.history_repository import HistoryRepository
from shortlink_app.schemas.common import HistoryListParams, PageMeta, PagedResponse
from shortlink_app.schemas.history import HistoryResponse
from shortlink_app.services.user_agent import parse_user_agent

logger = logging.getLogger(__name__)


def _or_none(value: str) -> Optional[str]:
    return value or None


class HistoryService:
    """Access history: written by the redirect pipeline, read by the admin API"""

    def __init__(self, db: Session, geoip: Optional[GeoIpStrategy] = None):
        self.db = db
        self.repo = HistoryRepository(db)
        self.geoip = geoip or NullGeoIp()

    async def record_access(
        self,
        url_id: int,
        short_code: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> HistoryResponse:
        """
        Enrich one visit and store it.

        Geo lookup failures degrade to empty fields. Storage failures
        propagate to the caller.
        """
        geo = await self.geoip.lookup_or_empty(ip_address)
        ua = parse_user_agent(user_agent)

        history = self.repo.insert(
            url_id=url_id,
            short_code=short_code,
            ip_address=ip_address,
            user_agent=user_agent,
            referer=referer,
            country=_or_none(geo.country),
            region=_or_none(geo.region),
            province=_or_none(geo.province),
            city=_or_none(geo.city),
            isp=_or_none(geo.isp),
            device_type=ua.device_type,
            os=ua.os,
            browser=ua.browser,
        )
        logger.info("Recorded access for code: %s from IP: %s", short_code, ip_address)
        return HistoryResponse.model_validate(history)

    async def list(self, params: HistoryListParams) -> PagedResponse[HistoryResponse]:
        histories, total = self.repo.list(params)
        data = [HistoryResponse.model_validate(h) for h in histories]
        return PagedResponse[HistoryResponse](
            data=data,
            meta=PageMeta.build(params.page, params.page_size, len(data), total),
        )

    async def delete_batch(self, ids: Sequence[int]) -> int:
        deleted = self.repo.delete_batch(ids)
        logger.info("Batch deleted %d history records", deleted)
        return deleted
