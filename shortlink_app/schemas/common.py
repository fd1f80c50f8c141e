import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ListParams(BaseModel):
    """Filters, sort and page for listing short URLs"""
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)
    short_code: Optional[str] = None
    original_url: Optional[str] = None  # substring match
    status: Optional[int] = None
    sort_by: Optional[str] = "created_at"
    order: Optional[str] = "desc"


class HistoryListParams(BaseModel):
    """Filters, sort and page for listing access history"""
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)
    short_code: Optional[str] = None
    url_id: Optional[int] = None
    sort_by: Optional[str] = "accessed_at"
    order: Optional[str] = "desc"


class PageMeta(BaseModel):
    page: int
    page_size: int
    current_count: int
    total_items: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, current_count: int, total_items: int) -> "PageMeta":
        return cls(
            page=page,
            page_size=page_size,
            current_count=current_count,
            total_items=total_items,
            total_pages=math.ceil(total_items / page_size) if page_size else 0,
        )


class PagedResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: PageMeta
