"""Durable store access for access history rows."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.errors import RepositoryError
from shortlink_app.models import AccessHistory
from shortlink_app.repositories.url_repository import order_clause
from shortlink_app.schemas.common import HistoryListParams

HISTORY_SORT_COLUMNS = {
    "id": AccessHistory.id,
    "accessed_at": AccessHistory.accessed_at,
    "created_at": AccessHistory.created_at,
}
DEFAULT_HISTORY_SORT = "accessed_at"


class HistoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError) -> RepositoryError:
        self.db.rollback()
        return RepositoryError(f"Failed to {action}: {error}")

    def insert(
        self,
        url_id: int,
        short_code: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
        country: Optional[str] = None,
        region: Optional[str] = None,
        province: Optional[str] = None,
        city: Optional[str] = None,
        isp: Optional[str] = None,
        device_type: Optional[str] = None,
        os: Optional[str] = None,
        browser: Optional[str] = None,
        accessed_at: Optional[datetime] = None,
    ) -> AccessHistory:
        now = datetime.now(timezone.utc)
        history = AccessHistory(
            url_id=url_id,
            short_code=short_code,
            ip_address=ip_address,
            user_agent=user_agent,
            referer=referer,
            country=country,
            region=region,
            province=province,
            city=city,
            isp=isp,
            device_type=device_type,
            os=os,
            browser=browser,
            accessed_at=accessed_at or now,
            created_at=now,
        )
        try:
            self.db.add(history)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("insert access history", e) from e

        self.db.refresh(history)
        return history

    def list(self, params: HistoryListParams) -> Tuple[List[AccessHistory], int]:
        query = select(AccessHistory)
        if params.short_code:
            query = query.where(AccessHistory.short_code == params.short_code)
        if params.url_id is not None:
            query = query.where(AccessHistory.url_id == params.url_id)

        try:
            total = self.db.scalar(select(func.count()).select_from(query.subquery()))
            items = self.db.scalars(
                query.order_by(
                    order_clause(
                        HISTORY_SORT_COLUMNS, DEFAULT_HISTORY_SORT, params.sort_by, params.order
                    )
                )
                .offset((params.page - 1) * params.page_size)
                .limit(params.page_size)
            ).all()
        except SQLAlchemyError as e:
            raise self._fail("list access histories", e) from e

        return list(items), total or 0

    def delete_batch(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        try:
            result = self.db.execute(delete(AccessHistory).where(AccessHistory.id.in_(ids)))
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("batch delete access histories", e) from e
        return result.rowcount or 0
