"""Repository-level snapshots of catalog rows."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ProductRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    manufacturer_id: str
    name: str
    slug: str
    description: Optional[str] = None
    price: Optional[float] = None
    retail_price: Optional[float] = None
    stock: int = 0
    moq: Optional[int] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    image_url: Optional[str] = None
    search_keywords: Optional[List[str]] = None
    rating: float = 0.0
    review_count: int = 0
    status: str = "draft"
    list_on_direct: bool = False
    is_demoted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("search_keywords", mode="before")
    @classmethod
    def keywords_as_strings(cls, value: Any) -> Optional[List[str]]:
        """Stored keywords are free-form JSON; non-list values are ignored"""
        if not isinstance(value, list):
            return None
        return [str(kw) for kw in value if kw is not None]


class ManufacturerRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    shop_name: Optional[str] = None
    shop_id: Optional[str] = None
    slug: Optional[str] = None
    tradinta_id: Optional[str] = None
    logo_url: Optional[str] = None
    location: Optional[str] = None
    lead_time: Optional[str] = None
    moq: Optional[int] = None
    rating: float = 0.0
    review_count: int = 0
    verification_status: str = "Unsubmitted"
    is_suspended: bool = False
    is_demoted: bool = False
    marketing_plan_id: Optional[str] = None
    plan_expires_at: Optional[datetime] = None

    @property
    def is_verified(self) -> bool:
        return self.verification_status == "Verified"


class AdSlotRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    pinned_entity_ids: Optional[List[Any]] = None
    expires_at: Optional[datetime] = None


class PlatformSettingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Dict[str, Any] = {}
