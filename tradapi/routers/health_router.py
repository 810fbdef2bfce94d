from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from tradapi.containers import Container
from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.database.connection import Database
from tradapi.schemas.health import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    database: Database = Depends(Provide[Container.core.database]),
    dispatcher: BackgroundDispatcher = Depends(Provide[Container.core.dispatcher]),
) -> HealthCheckResponse:
    """Health check endpoint."""

    return HealthCheckResponse(
        status="healthy" if database.available else "degraded",
        store_available=database.available,
        background_pending=dispatcher.pending_count,
    )
