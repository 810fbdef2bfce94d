"""
관리자/배치 API 라우터 - 내부 토큰 필요

- POST /admin/points/award: 수동 포인트 지급
- GET /admin/points/audit: 원장 해시 무결성 검증
- GET /admin/points/analytics: 포인트 통계
- POST /admin/ratings/manufacturers/{manufacturer_id}/recompute: 제조사 평점 재계산
- POST /admin/ratings/manufacturers/recompute: 전체 제조사 평점 재계산
"""

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, status

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.core.auth import require_internal_token
from tradapi.deps import get_rating_service
from tradapi.schemas.points import (
    LedgerAuditReport,
    PointsAnalyticsResponse,
    PointsAwardRequest,
    PointsAwardResponse,
)
from tradapi.schemas.ratings import ManufacturerRatingResponse, RatingRecomputeReport
from tradapi.services.points_ledger_service import PointsLedgerService
from tradapi.services.rating_service import RatingService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_internal_token)],
)

ADMIN_ISSUER = "admin"


@router.post("/points/award", response_model=PointsAwardResponse, status_code=status.HTTP_202_ACCEPTED)
@inject
def award_points(
    payload: PointsAwardRequest,
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
) -> PointsAwardResponse:
    """
    수동 포인트 지급 - 원장 기록은 백그라운드에서 처리

    HTTP Status:
        202: 접수됨 (기록 실패는 로그로만 남음)
        400: 잘못된 입력
        401: 내부 토큰 없음/불일치
    """
    event_id = ledger.award_points(
        payload.user_id,
        payload.points,
        payload.reason_code,
        payload.metadata,
        issued_by=ADMIN_ISSUER,
    )
    return PointsAwardResponse(event_id=event_id)


@router.get("/points/audit", response_model=LedgerAuditReport)
@inject
def audit_ledger(
    user_id: Optional[str] = Query(None, description="특정 사용자만 검증"),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
    settings: Settings = Depends(Provide[Container.core.config]),
) -> LedgerAuditReport:
    return ledger.audit_ledger(user_id=user_id, batch_size=settings.LEDGER_AUDIT_BATCH_SIZE)


@router.get("/points/analytics", response_model=PointsAnalyticsResponse)
@inject
def points_analytics(
    top_n: int = Query(10, ge=1, le=100),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
) -> PointsAnalyticsResponse:
    return ledger.get_analytics(top_n=top_n)


@router.post(
    "/ratings/manufacturers/recompute",
    response_model=RatingRecomputeReport,
)
def recompute_all_manufacturers(
    batch_size: Optional[int] = Query(None, ge=1, le=1000),
    ratings: RatingService = Depends(get_rating_service),
) -> RatingRecomputeReport:
    return ratings.recompute_all_manufacturer_ratings(batch_size=batch_size)


@router.post(
    "/ratings/manufacturers/{manufacturer_id}/recompute",
    response_model=ManufacturerRatingResponse,
)
def recompute_manufacturer(
    manufacturer_id: str,
    ratings: RatingService = Depends(get_rating_service),
) -> ManufacturerRatingResponse:
    return ratings.recompute_manufacturer_rating(manufacturer_id)
