"""
리뷰 제출 API

POST /api/reviews answers with a fixed wire contract consumed by the
storefront, so it builds its own JSON bodies instead of going through the
shared error envelope.
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from tradapi.database.connection import Database
from tradapi.schemas.ratings import ReviewSubmission
from tradapi.services.points_ledger_service import PointsLedgerService
from tradapi.services.rating_service import RatingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reviews"])

MISSING_FIELDS = {"error": "Missing required fields."}


@router.post("/reviews")
@inject
def submit_review(
    submission: Optional[ReviewSubmission] = Body(None),
    database: Database = Depends(Provide[Container.core.database]),
    ledger: PointsLedgerService = Depends(Provide[Container.services.points_ledger_service]),
    settings: Settings = Depends(Provide[Container.core.config]),
) -> JSONResponse:
    """
    리뷰 평점 반영 + 5점 리뷰 판매자 보너스

    HTTP Status:
        200: {"success": true, "message": ...}
        400: {"error": "Missing required fields."}
        500: {"error": ..., "details": ...} (상품 없음, 동시 수정 재시도 초과 포함)
    """
    missing = submission.missing_fields() if submission is not None else ["body"]
    if missing:
        logger.info(f"Review rejected, missing fields: {missing}")
        return JSONResponse(status_code=400, content=MISSING_FIELDS)

    try:
        with database.session() as db:
            result = RatingService(db=db, ledger=ledger, settings=settings).record_review(submission)
    except ValidationError as e:
        logger.info(f"Review rejected: {e.message}")
        return JSONResponse(status_code=400, content=MISSING_FIELDS)
    except (NotFoundError, ConflictError) as e:
        logger.error(f"Error updating ratings: {e.message}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to update ratings.", "details": e.message},
        )
    except Exception as e:
        logger.exception("Error updating ratings")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to update ratings.", "details": str(e)},
        )

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Ratings updated successfully.",
            "rating": result.rating,
            "review_count": result.review_count,
        },
    )
