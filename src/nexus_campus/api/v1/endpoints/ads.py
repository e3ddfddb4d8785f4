"""Engagement endpoints for sponsored posts shown to signed-in users."""

from fastapi import APIRouter, Response, status

from nexus_campus.services import ad_service

from ..dependencies import CallerDep, SessionDep

router = APIRouter(prefix="/ads", tags=["ads"])


@router.post("/{ad_id}/impression", status_code=status.HTTP_204_NO_CONTENT)
async def record_impression(ad_id: str, caller: CallerDep, db: SessionDep) -> Response:
    ad_service.record_impression(db, caller, ad_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{ad_id}/click", status_code=status.HTTP_204_NO_CONTENT)
async def record_click(ad_id: str, caller: CallerDep, db: SessionDep) -> Response:
    ad_service.record_click(db, caller, ad_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
