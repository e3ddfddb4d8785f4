"""Server-to-server ads API.

Every route here requires an HMAC-signed request from the ads component;
see :mod:`nexus_campus.services.signing` for the wire contract.
"""

from fastapi import APIRouter, Depends, status

from nexus_campus.schemas.ad import AdCreate, AdStatsResponse, AdStatusResponse, AdUpdate
from nexus_campus.services import ad_service

from ..dependencies import SessionDep, require_signed_request

router = APIRouter(
    prefix="/internal/ads",
    tags=["internal"],
    dependencies=[Depends(require_signed_request)],
)


@router.post("", response_model=AdStatusResponse, status_code=status.HTTP_201_CREATED)
async def create_ad(data: AdCreate, db: SessionDep) -> AdStatusResponse:
    ad = ad_service.create_ad(db, data)
    return AdStatusResponse(id=ad.id, status=ad.status)


@router.patch("/{ad_id}", response_model=AdStatusResponse)
async def update_ad(ad_id: str, data: AdUpdate, db: SessionDep) -> AdStatusResponse:
    ad = ad_service.update_ad(db, ad_id, data)
    return AdStatusResponse(id=ad.id, status=ad.status)


@router.get("/{ad_id}/stats", response_model=AdStatsResponse)
async def get_ad_stats(ad_id: str, db: SessionDep) -> AdStatsResponse:
    return AdStatsResponse(**ad_service.ad_stats(db, ad_id))
