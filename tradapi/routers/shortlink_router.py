"""
단축 링크 / 파트너 추적 라우터

- GET /l/{link_id}: 단축 링크 리다이렉트 (307) + referralCode 쿠키
- GET /track: 레거시 추적 링크 (deprecated)
- POST /shortlinks, GET /shortlinks: 파트너 링크 관리
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.core.exceptions import ValidationError
from tradapi.schemas.referral import (
    PartnerShortlinksResponse,
    ShortlinkCreateRequest,
    ShortlinkResolution,
    ShortlinkResponse,
)
from tradapi.services.shortlink_service import ShortlinkService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["shortlinks"])


def _redirect(resolution: ShortlinkResolution, settings: Settings) -> RedirectResponse:
    response = RedirectResponse(resolution.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    if resolution.partner_id:
        # readable by client-side attribution scripts
        response.set_cookie(
            key=settings.REFERRAL_COOKIE_NAME,
            value=resolution.partner_id,
            max_age=settings.REFERRAL_COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
            httponly=False,
        )
    return response


@router.get("/l/", include_in_schema=False)
def missing_link_id() -> PlainTextResponse:
    return PlainTextResponse("Link ID is missing", status_code=status.HTTP_400_BAD_REQUEST)


@router.get("/l/{link_id}")
@inject
def follow_shortlink(
    link_id: str,
    request: Request,
    shortlinks: ShortlinkService = Depends(Provide[Container.services.shortlink_service]),
    settings: Settings = Depends(Provide[Container.core.config]),
):
    try:
        resolution = shortlinks.resolve(
            link_id, str(request.url), request.headers.get("user-agent", "")
        )
    except ValidationError as e:
        return PlainTextResponse(e.message, status_code=status.HTTP_400_BAD_REQUEST)
    return _redirect(resolution, settings)


@router.get("/track")
@inject
def legacy_track(
    request: Request,
    ref: Optional[str] = Query(None),
    url: Optional[str] = Query(None),
    shortlinks: ShortlinkService = Depends(Provide[Container.services.shortlink_service]),
    settings: Settings = Depends(Provide[Container.core.config]),
) -> RedirectResponse:
    """Deprecated: new links go through /l/{link_id}"""
    resolution = shortlinks.track_legacy(
        ref, url, str(request.url), request.headers.get("user-agent", "")
    )
    return _redirect(resolution, settings)


@router.post("/shortlinks", response_model=ShortlinkResponse, status_code=status.HTTP_201_CREATED)
@inject
def create_shortlink(
    payload: ShortlinkCreateRequest,
    shortlinks: ShortlinkService = Depends(Provide[Container.services.shortlink_service]),
) -> ShortlinkResponse:
    """파트너 단축 링크 생성"""
    return shortlinks.create_shortlink(payload.partner_id, payload.destination_url, payload.campaign)


@router.get("/shortlinks", response_model=PartnerShortlinksResponse)
@inject
def list_shortlinks(
    partner_id: str = Query(..., min_length=1),
    shortlinks: ShortlinkService = Depends(Provide[Container.services.shortlink_service]),
) -> PartnerShortlinksResponse:
    """파트너 링크 목록 (최신순) + 총 클릭 수"""
    return shortlinks.list_partner_shortlinks(partner_id)
