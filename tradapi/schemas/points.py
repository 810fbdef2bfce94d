from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class PointsLedgerEventSchema(BaseModel):
    """Stored ledger event, as read back from the store"""

    model_config = ConfigDict(from_attributes=True)

    event_id: str = Field(..., description="이벤트 ID")
    user_id: str = Field(..., description="사용자 ID")
    points: int = Field(..., description="포인트 변화량")
    action: str = Field("award", description="이벤트 종류")
    reason_code: str = Field(..., description="지급 사유 코드")
    event_metadata: Dict[str, Any] = Field(default_factory=dict, description="감사용 부가 정보")
    timestamp: str = Field(..., description="해시에 사용된 ISO-8601 시각")
    created_at: Optional[datetime] = Field(None, description="저장 시각 (서버)")
    event_hash: str = Field(..., description="SHA-256 무결성 해시")
    issued_by: str = Field("system", description="발급 주체")


class PointsBalanceResponse(BaseModel):
    """포인트 잔액 응답"""

    user_id: str = Field(..., description="사용자 ID")
    balance: int = Field(..., description="현재 포인트 잔액")


class PointsLedgerEntry(BaseModel):
    """포인트 원장 항목"""

    event_id: str
    points: int
    reason_code: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str
    issued_by: str


class PointsLedgerResponse(BaseModel):
    """포인트 원장 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[PointsLedgerEntry] = Field(..., description="원장 항목 목록 (최신순)")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class PointsAwardRequest(BaseModel):
    """Manual award issued by an operator"""

    user_id: str = Field(..., min_length=1, max_length=128)
    points: int = Field(..., description="지급 포인트")
    reason_code: str = Field(..., min_length=1, max_length=128)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PointsAwardResponse(BaseModel):
    """Acknowledges that the award was handed to the ledger; persistence is asynchronous"""

    accepted: bool = True
    event_id: str


class LedgerAuditReport(BaseModel):
    """Result of recomputing every stored event hash"""

    status: str = Field(..., description="OK | MISMATCH")
    user_id: Optional[str] = Field(None, description="검증 대상 사용자 (전체 검증 시 None)")
    checked_count: int = 0
    mismatch_count: int = 0
    mismatched_event_ids: List[str] = Field(default_factory=list)
    verified_at: str


class TopEarner(BaseModel):
    user_id: str
    total_points: int


class ReasonPoints(BaseModel):
    reason: str
    points: int


class DayPoints(BaseModel):
    day: str
    points: int


class PointsAnalyticsResponse(BaseModel):
    total_points_awarded: int
    total_users_with_points: int
    top_earners: List[TopEarner]
    points_by_reason: List[ReasonPoints]
    points_by_day_of_week: List[DayPoints]
