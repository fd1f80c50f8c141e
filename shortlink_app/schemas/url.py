from pydantic import BaseModel, Field, computed_field, ConfigDict
from typing import Optional
from datetime import datetime
from shortlink_app.config import settings
from shortlink_app.models.url import UrlStatus


class ShortenCreate(BaseModel):
    original_url: str = Field(..., description="Destination URL (http:// or https://)")
    short_code: Optional[str] = Field(None, description="Custom code; generated when omitted")
    description: Optional[str] = None


class ShortenUpdate(BaseModel):
    """Partial update: only fields that are set change"""
    original_url: Optional[str] = None
    description: Optional[str] = None
    status: Optional[int] = None


class ShortURLRecord(BaseModel):
    """Snapshot of a ShortURL row.

    This is both what the service hands back and what is stored in the
    cache as JSON, so a cache hit and a database read look identical.
    from_attributes=True lets it read straight off the SQLAlchemy model.
    """
    id: int
    short_code: str
    original_url: str
    description: Optional[str] = None
    status: int = UrlStatus.ENABLED
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_enabled(self) -> bool:
        return self.status == UrlStatus.ENABLED


class ShortenResponse(ShortURLRecord):
    """API representation with the full short URL"""

    @computed_field  # Like SerializerMethodField in DRF
    @property
    def short_url(self) -> str:
        """Computed field - automatically generated from short_code"""
        return f"{settings.base_url.rstrip('/')}/{self.short_code}"
