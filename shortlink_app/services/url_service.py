import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.orm import Session

from shortlink_app.cache.strategies import CacheStrategy, NullCache
from shortlink_app.config import settings
from shortlink_app.errors import CacheError, InvalidInputError, NotFoundError
from shortlink_app.models.url import UrlStatus
from shortlink_app.repositories.url_repository import URLRepository
from shortlink_app.schemas.common import ListParams, PageMeta, PagedResponse
from shortlink_app.schemas.url import ShortURLRecord
from shortlink_app.services.short_code import ShortCodeAllocator

logger = logging.getLogger(__name__)


def cache_key(short_code: str) -> str:
    return f"url:{short_code}"


def validate_original_url(url: Optional[str]) -> str:
    if not url:
        raise InvalidInputError("Original URL cannot be empty")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise InvalidInputError(f"Invalid URL format: {url}")
    return url


class URLService:
    """
    Short URL service with dependency injection for cache.

    Cache-aside protocol:
    - Reads try the cache, fall back to the database, then populate the cache
    - Writes go to the database first; the cache is written only on success
    - Deletes go to the database first, then invalidate the cache entry

    The cache is an accelerator only. Every cache failure is logged and
    swallowed; database failures propagate.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        allocator: Optional[ShortCodeAllocator] = None,
        code_length: Optional[int] = None,
        cache_ttl: Optional[int] = None,
    ):
        """
        Initialize URL service with dependencies.

        Args:
            db: Database session
            cache: Cache strategy (NullCache when omitted)
            allocator: Short code allocator (built from settings when omitted)
            code_length: Generated code length (settings.code_length when omitted)
            cache_ttl: Base cache TTL in seconds (settings.cache_ttl when omitted)
        """
        self.db = db
        self.repo = URLRepository(db)
        self.cache = cache or NullCache()
        self.code_length = code_length or settings.code_length
        self.allocator = allocator or ShortCodeAllocator(
            alphabet=settings.code_charset,
            length=self.code_length,
            exists=self.repo.exists_code,
        )
        # Entries live cache_ttl seconds per code character
        self.cache_ttl = (cache_ttl or settings.cache_ttl) * self.code_length

    async def create(
        self,
        original_url: str,
        short_code: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ShortURLRecord:
        """
        Create a new short URL.

        Raises:
            InvalidInputError: bad URL or code
            AlreadyExistsError: code taken (pre-check or unique constraint)
            InternalError: no free code found
        """
        validate_original_url(original_url)
        code = self.allocator.resolve(short_code)

        url = self.repo.insert(
            short_code=code,
            original_url=original_url,
            description=description,
            status=UrlStatus.ENABLED,
        )
        record = ShortURLRecord.model_validate(url)
        logger.info("Created short URL: %s -> %s", code, original_url)

        await self._cache_record(record)
        return record

    async def get(self, short_code: str) -> ShortURLRecord:
        """
        Get a short URL using Cache-Aside pattern.

        Flow:
        1. Check cache first
        2. If cache miss (or cache error), query database
        3. Populate cache for next time
        """
        record = await self._cached_record(short_code)
        if record is not None:
            return record

        url = self.repo.find_by_code(short_code)
        if url is None:
            raise NotFoundError(f"URL with code '{short_code}' not found")

        record = ShortURLRecord.model_validate(url)
        await self._cache_record(record)
        return record

    async def list(self, params: ListParams) -> PagedResponse[ShortURLRecord]:
        """List short URLs straight from the database (never cached)"""
        urls, total = self.repo.list(params)
        data: List[ShortURLRecord] = [ShortURLRecord.model_validate(url) for url in urls]
        return PagedResponse[ShortURLRecord](
            data=data,
            meta=PageMeta.build(params.page, params.page_size, len(data), total),
        )

    async def update(
        self,
        short_code: str,
        original_url: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[int] = None,
    ) -> ShortURLRecord:
        """Partial update; the cache entry is overwritten before returning"""
        if original_url is not None:
            validate_original_url(original_url)
        if status is not None and status not in {s.value for s in UrlStatus}:
            raise InvalidInputError(f"Invalid status: {status}")

        url = self.repo.update(
            short_code,
            original_url=original_url,
            description=description,
            status=status,
        )
        record = ShortURLRecord.model_validate(url)
        logger.info("Updated short URL: %s", short_code)

        await self._cache_record(record)
        return record

    async def delete(self, short_code: str) -> None:
        self.repo.delete(short_code)
        logger.info("Deleted short URL: %s", short_code)
        await self._invalidate(short_code)

    async def delete_batch(self, ids: Sequence[int]) -> int:
        """
        Delete several short URLs by id.

        Codes are looked up first because the bulk delete works on ids and
        the cache is keyed by code.
        """
        codes = []
        for url_id in ids:
            url = self.repo.find_by_id(url_id)
            if url is not None:
                codes.append(url.short_code)

        deleted = self.repo.delete_batch(ids)
        logger.info("Batch deleted %d short URLs", deleted)

        for code in codes:
            await self._invalidate(code)
        return deleted

    async def _cached_record(self, short_code: str) -> Optional[ShortURLRecord]:
        try:
            cached = await self.cache.get(cache_key(short_code))
        except CacheError as e:
            logger.warning("Cache get failed for %s: %s", short_code, e)
            return None

        if cached is None:
            logger.debug("Cache miss for code: %s", short_code)
            return None

        try:
            record = ShortURLRecord.model_validate_json(cached)
        except ValidationError as e:
            logger.warning("Discarding undecodable cache entry for %s: %s", short_code, e)
            return None

        logger.debug("Cache hit for code: %s", short_code)
        return record

    async def _cache_record(self, record: ShortURLRecord) -> None:
        try:
            await self.cache.set(cache_key(record.short_code), record.model_dump_json(), ttl=self.cache_ttl)
        except CacheError as e:
            logger.warning("Failed to cache URL %s: %s", record.short_code, e)

    async def _invalidate(self, short_code: str) -> None:
        try:
            await self.cache.delete(cache_key(short_code))
        except CacheError as e:
            # Entry may be served until its TTL runs out
            logger.warning("Failed to delete cache for URL %s: %s", short_code, e)
