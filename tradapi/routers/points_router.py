"""
포인트 조회 API 라우터

- GET /points/{user_id}/balance: 포인트 잔액
- GET /points/{user_id}/ledger: 포인트 원장 (최신순)
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from tradapi.containers import Container
from tradapi.schemas.points import PointsBalanceResponse, PointsLedgerResponse
from tradapi.services.points_ledger_service import PointsLedgerService

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/{user_id}/balance", response_model=PointsBalanceResponse)
@inject
def get_balance(
    user_id: str = Path(..., min_length=1, description="사용자 ID"),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
) -> PointsBalanceResponse:
    """
    포인트 잔액 조회 - 원장 이벤트 합계

    HTTP Status:
        200: 성공
        503: 저장소 비활성화
    """
    return ledger.get_user_balance(user_id)


@router.get("/{user_id}/ledger", response_model=PointsLedgerResponse)
@inject
def get_ledger(
    user_id: str = Path(..., min_length=1, description="사용자 ID"),
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
) -> PointsLedgerResponse:
    """포인트 원장 조회 - 최신 이벤트부터"""
    return ledger.get_user_ledger(user_id, limit=limit, offset=offset)
