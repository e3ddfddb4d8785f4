"""Connection request endpoints."""

from fastapi import APIRouter, status

from nexus_campus.schemas.network import (
    ConnectionEntry,
    ConnectionRequestCreate,
    ConnectionRequestResponse,
    RemovedResponse,
)
from nexus_campus.services import network_service

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep, raise_for_outcome

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("/", response_model=list[ConnectionEntry])
async def list_connections(caller: CallerDep, db: SessionDep) -> list[ConnectionEntry]:
    return [
        ConnectionEntry(user_id=user_id, connected_at=at)
        for user_id, at in network_service.list_connections(db, caller)
    ]


@router.post(
    "/request",
    response_model=ConnectionRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_request(
    data: ConnectionRequestCreate,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> ConnectionRequestResponse:
    """Send a connection request; 409 if one already exists for this pair."""
    result = network_service.send_connection_request(db, session_factory, caller, data)
    raise_for_outcome(result, already="Connection request already sent")
    return ConnectionRequestResponse.model_validate(result.record)


@router.get("/requests/received", response_model=list[ConnectionRequestResponse])
async def received_requests(caller: CallerDep, db: SessionDep) -> list[ConnectionRequestResponse]:
    return [ConnectionRequestResponse.model_validate(item) for item in network_service.received_requests(db, caller)]


@router.get("/requests/sent", response_model=list[ConnectionRequestResponse])
async def sent_requests(caller: CallerDep, db: SessionDep) -> list[ConnectionRequestResponse]:
    return [ConnectionRequestResponse.model_validate(item) for item in network_service.sent_requests(db, caller)]


@router.put("/requests/{request_id}/accept", response_model=ConnectionRequestResponse)
def accept_request(
    request_id: str,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> ConnectionRequestResponse:
    result = network_service.decide_connection_request(db, session_factory, caller, request_id, accept=True)
    raise_for_outcome(
        result,
        already="Already connected",
        invalid="Only pending requests can be answered",
    )
    return ConnectionRequestResponse.model_validate(result.record)


@router.put("/requests/{request_id}/reject", response_model=ConnectionRequestResponse)
def reject_request(
    request_id: str,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> ConnectionRequestResponse:
    result = network_service.decide_connection_request(db, session_factory, caller, request_id, accept=False)
    raise_for_outcome(result, invalid="Only pending requests can be answered")
    return ConnectionRequestResponse.model_validate(result.record)


@router.delete("/{user_id}", response_model=RemovedResponse)
async def remove_connection(user_id: str, caller: CallerDep, db: SessionDep) -> RemovedResponse:
    return RemovedResponse(removed=network_service.remove_connection(db, caller, user_id))
