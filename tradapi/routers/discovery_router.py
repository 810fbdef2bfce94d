"""
상품 탐색 API

- GET /discovery/products: 필터 + 랭킹 + 페이지네이션
- GET /discovery/lookup: 상품/제조사 단건 조회 (moderation 도구용)
"""

from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from tradapi.containers import Container
from tradapi.schemas.discovery import EntityLookupResponse, PaginatedProducts, SearchOptions
from tradapi.services.discovery_service import DiscoveryService
from tradapi.services.entity_lookup_service import EntityLookupService

router = APIRouter(prefix="/discovery", tags=["discovery"])


@router.get("/products", response_model=PaginatedProducts)
@inject
def get_ranked_products(
    search_query: str = Query("", description="상품명/키워드 검색어"),
    category: str = Query("all"),
    verified_only: bool = Query(False),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    moq: Optional[int] = Query(None, ge=0),
    moq_range: int = Query(50, ge=0),
    rating: Optional[float] = Query(None, ge=0, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    user_id: Optional[str] = Query(None, description="개인화 대상 사용자"),
    is_direct: bool = Query(False, description="Tradinta Direct 리테일 목록"),
    product_ids: Optional[List[str]] = Query(None),
    discovery: DiscoveryService = Depends(Provide[Container.services.discovery_service]),
) -> PaginatedProducts:
    options = SearchOptions(
        search_query=search_query,
        category=category,
        verified_only=verified_only,
        min_price=min_price,
        max_price=max_price,
        moq=moq,
        moq_range=moq_range,
        rating=rating,
        page=page,
        limit=limit,
        user_id=user_id,
        is_direct=is_direct,
        product_ids=product_ids,
    )
    return discovery.get_ranked_products(options)


@router.get("/lookup", response_model=EntityLookupResponse)
@inject
def lookup_entity(
    entity_type: str = Query(..., pattern="^(product|manufacturer)$"),
    q: str = Query(..., min_length=1),
    lookup: EntityLookupService = Depends(Provide[Container.services.entity_lookup_service]),
) -> EntityLookupResponse:
    return EntityLookupResponse(entity=lookup.lookup_entity(entity_type, q))
