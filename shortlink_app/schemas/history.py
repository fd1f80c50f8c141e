from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class HistoryResponse(BaseModel):
    id: int
    url_id: int
    short_code: str
    ip_address: str
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    isp: Optional[str] = None
    device_type: Optional[str] = None
    os: Optional[str] = None
    browser: Optional[str] = None
    accessed_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
