"""
Durable store access for short URLs.

All SQLAlchemy errors are translated here: a unique-constraint violation
becomes AlreadyExistsError (the losing side of a create race), anything
else becomes RepositoryError. The session is rolled back before raising.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.errors import AlreadyExistsError, NotFoundError, RepositoryError
from shortlink_app.models import AccessHistory, ShortURL, UrlStatus
from shortlink_app.schemas.common import ListParams

URL_SORT_COLUMNS = {
    "id": ShortURL.id,
    "short_code": ShortURL.short_code,
    "created_at": ShortURL.created_at,
    "updated_at": ShortURL.updated_at,
}
DEFAULT_URL_SORT = "created_at"


def order_clause(columns: dict, default: str, sort_by: Optional[str], order: Optional[str]):
    """Resolve an allow-listed sort column; unknown column or order falls back to default desc"""
    column = columns.get(sort_by or "")
    if column is None or order not in ("asc", "desc"):
        return columns[default].desc()
    return column.asc() if order == "asc" else column.desc()


class URLRepository:
    """Short URL persistence on a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError) -> RepositoryError:
        self.db.rollback()
        return RepositoryError(f"Failed to {action}: {error}")

    def insert(
        self,
        short_code: str,
        original_url: str,
        description: Optional[str] = None,
        status: int = UrlStatus.ENABLED,
    ) -> ShortURL:
        now = datetime.now(timezone.utc)
        url = ShortURL(
            short_code=short_code,
            original_url=original_url,
            description=description,
            status=int(status),
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(url)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise AlreadyExistsError(f"Code '{short_code}' already exists") from e
        except SQLAlchemyError as e:
            raise self._fail("insert short URL", e) from e

        self.db.refresh(url)
        return url

    def find_by_code(self, short_code: str) -> Optional[ShortURL]:
        try:
            return self.db.scalars(
                select(ShortURL).where(ShortURL.short_code == short_code)
            ).first()
        except SQLAlchemyError as e:
            raise self._fail("query short URL", e) from e

    def find_by_id(self, url_id: int) -> Optional[ShortURL]:
        try:
            return self.db.get(ShortURL, url_id)
        except SQLAlchemyError as e:
            raise self._fail("query short URL", e) from e

    def exists_code(self, short_code: str) -> bool:
        try:
            found = self.db.scalar(
                select(ShortURL.id).where(ShortURL.short_code == short_code).limit(1)
            )
        except SQLAlchemyError as e:
            raise self._fail("check short code", e) from e
        return found is not None

    def list(self, params: ListParams) -> Tuple[List[ShortURL], int]:
        query = select(ShortURL)
        if params.short_code:
            query = query.where(ShortURL.short_code == params.short_code)
        if params.original_url:
            query = query.where(ShortURL.original_url.contains(params.original_url, autoescape=True))
        if params.status is not None:
            query = query.where(ShortURL.status == params.status)

        try:
            total = self.db.scalar(select(func.count()).select_from(query.subquery()))
            items = self.db.scalars(
                query.order_by(
                    order_clause(URL_SORT_COLUMNS, DEFAULT_URL_SORT, params.sort_by, params.order)
                )
                .offset((params.page - 1) * params.page_size)
                .limit(params.page_size)
            ).all()
        except SQLAlchemyError as e:
            raise self._fail("list short URLs", e) from e

        return list(items), total or 0

    def update(
        self,
        short_code: str,
        original_url: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[int] = None,
    ) -> ShortURL:
        url = self.find_by_code(short_code)
        if url is None:
            raise NotFoundError(f"URL with code '{short_code}' not found")

        if original_url is not None:
            url.original_url = original_url
        if description is not None:
            url.description = description
        if status is not None:
            url.status = int(status)
        url.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("update short URL", e) from e

        self.db.refresh(url)
        return url

    def delete(self, short_code: str) -> None:
        url = self.find_by_code(short_code)
        if url is None:
            raise NotFoundError(f"URL with code '{short_code}' not found")

        try:
            self.db.execute(delete(AccessHistory).where(AccessHistory.url_id == url.id))
            self.db.delete(url)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete short URL", e) from e

    def delete_batch(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        try:
            self.db.execute(delete(AccessHistory).where(AccessHistory.url_id.in_(ids)))
            result = self.db.execute(delete(ShortURL).where(ShortURL.id.in_(ids)))
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("batch delete short URLs", e) from e
        return result.rowcount or 0
