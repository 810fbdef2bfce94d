"""Pydantic models for product discovery, ranking and entity lookup."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ModerationInfo(BaseModel):
    """Visibility/compliance flags consumed by moderation UIs"""

    is_demoted: bool = False
    seller_demoted: bool = False
    unresolved_reports: int = 0


class ProductWithRanking(BaseModel):
    """
    Public-facing product plus its computed rank.

    Never persisted; recomputed on every discovery request. Manufacturer
    lookups reuse the same shape with only the shared fields filled in.
    """

    id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    retail_price: Optional[float] = None
    stock: Optional[int] = None
    moq: Optional[int] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    image_url: Optional[str] = None
    manufacturer_id: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    status: Optional[str] = None
    search_keywords: List[str] = Field(default_factory=list)
    list_on_direct: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    trad_rank: float = 0
    is_sponsored: bool = False
    manufacturer_name: Optional[str] = None
    manufacturer_slug: Optional[str] = None
    manufacturer_location: Optional[str] = None
    lead_time: Optional[str] = None
    is_verified: bool = False
    shop_id: Optional[str] = None
    moderation: ModerationInfo = Field(default_factory=ModerationInfo)


class SearchOptions(BaseModel):
    """Filters and pagination for a discovery request"""

    search_query: str = ""
    category: str = "all"
    verified_only: bool = False
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    moq: Optional[int] = None
    moq_range: int = 50
    rating: Optional[float] = None
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1)
    user_id: Optional[str] = None
    is_direct: bool = False
    product_ids: Optional[List[str]] = None


class PaginatedProducts(BaseModel):
    """`products` is always a list, possibly empty"""

    products: List[ProductWithRanking] = Field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0


class EntityLookupResponse(BaseModel):
    entity: Optional[ProductWithRanking] = None
