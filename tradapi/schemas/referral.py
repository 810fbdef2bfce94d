from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShortlinkCreateRequest(BaseModel):
    partner_id: str = Field(..., min_length=1, max_length=128)
    destination_url: str = Field(..., min_length=1, description="Absolute URL or site-relative path")
    campaign: Optional[str] = Field(None, max_length=128)


class ShortlinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    destination_url: Optional[str] = None
    partner_id: Optional[str] = None
    campaign: Optional[str] = None
    click_count: int = 0
    created_at: Optional[datetime] = None


class PartnerShortlinksResponse(BaseModel):
    partner_id: str
    shortlinks: List[ShortlinkResponse]
    total_clicks: int


@dataclass
class ShortlinkResolution:
    """Where to send the visitor and whom to attribute the visit to"""

    location: str
    partner_id: Optional[str] = None
    found: bool = False
