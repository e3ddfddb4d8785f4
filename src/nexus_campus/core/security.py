"""Bearer-token identity handling.

Tokens are issued elsewhere; this service only needs the subject, the role
set and the organizational scope carried in the claims.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from nexus_campus.core.settings import settings

ROLE_STUDENT = "STUDENT"
ROLE_FACULTY = "FACULTY"
ROLE_DEPT_ADMIN = "DEPT_ADMIN"
ROLE_HEAD_ADMIN = "HEAD_ADMIN"


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be turned into a caller identity."""


@dataclass(frozen=True)
class CallerContext:
    """Verified identity of the caller for the current request."""

    subject: str
    college_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    department: str | None = None
    name: str | None = None
    avatar_url: str | None = None

    def has_role(self, *roles: str) -> bool:
        """Return True if the caller holds any of ``roles``."""
        return any(role in self.roles for role in roles)

    @property
    def is_student(self) -> bool:
        return ROLE_STUDENT in self.roles

    @property
    def primary_role(self) -> str:
        if self.is_student:
            return ROLE_STUDENT
        return sorted(self.roles)[0] if self.roles else "UNKNOWN"


def create_access_token(
    subject: str,
    *,
    roles: Iterable[str],
    college_id: str,
    department: str | None = None,
    name: str | None = None,
    avatar_url: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Create a signed access token carrying identity and scope claims."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    to_encode: dict[str, object] = {
        "sub": subject,
        "roles": list(roles),
        "college_id": college_id,
        "exp": datetime.now(UTC) + timedelta(minutes=minutes),
    }
    if department is not None:
        to_encode["department"] = department
    if name is not None:
        to_encode["name"] = name
    if avatar_url is not None:
        to_encode["avatar_url"] = avatar_url
    encoded_jwt: str = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> CallerContext:
    """Decode ``token`` into a :class:`CallerContext`.

    Raises:
        InvalidTokenError: If the signature, expiry or required claims are invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidTokenError(str(err)) from err

    subject = payload.get("sub")
    college_id = payload.get("college_id")
    if not subject or not college_id:
        raise InvalidTokenError("token is missing subject or college scope")

    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        raise InvalidTokenError("roles claim must be a list")

    return CallerContext(
        subject=str(subject),
        college_id=str(college_id),
        roles=frozenset(str(role) for role in roles),
        department=payload.get("department"),
        name=payload.get("name") or payload.get("displayName"),
        avatar_url=payload.get("avatar_url") or payload.get("picture"),
    )
