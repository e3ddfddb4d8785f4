"""Shared API dependencies for authentication and common functionality."""

import json
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import BadRequestError
from nexus_campus.core.security import CallerContext, InvalidTokenError, decode_access_token
from nexus_campus.core.settings import settings
from nexus_campus.db.session import get_db, get_session_factory
from nexus_campus.services.claims import ClaimResult, outcome_error
from nexus_campus.services.replay import get_replay_cache
from nexus_campus.services.signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, RequestVerifier

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


def get_current_caller(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> CallerContext:
    """Resolve the caller identity from the bearer token.

    Raises:
        HTTPException: If the token is invalid or lacks required claims.
    """
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


# Type alias for current caller dependency
CallerDep = Annotated[CallerContext, Depends(get_current_caller)]


def get_request_verifier() -> RequestVerifier:
    """Return a verifier bound to the configured secret and replay cache."""
    return RequestVerifier(settings.ads_hmac_secret, get_replay_cache())


VerifierDep = Annotated[RequestVerifier, Depends(get_request_verifier)]


async def require_signed_request(request: Request, verifier: VerifierDep) -> None:
    """Verify the HMAC signature of an internal request.

    The signed path includes the query string exactly as received. An empty
    body is treated as absent.
    """
    raw = await request.body()
    body: Any = None
    if raw:
        try:
            body = json.loads(raw)
        except ValueError as err:
            raise BadRequestError("Request body must be JSON") from err

    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"

    verifier.verify(
        request.method,
        path,
        body,
        request.headers.get(TIMESTAMP_HEADER),
        request.headers.get(SIGNATURE_HEADER),
    )


def raise_for_outcome(
    result: ClaimResult,
    *,
    full: str | None = None,
    already: str | None = None,
    invalid: str | None = None,
) -> None:
    """Raise the typed error matching a non-successful claim outcome."""
    error = outcome_error(result, full=full, already=already, invalid=invalid)
    if error is not None:
        raise error
