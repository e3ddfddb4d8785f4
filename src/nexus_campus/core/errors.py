"""Typed failures raised by services and rendered by the API layer.

Every error carries an HTTP status and a short machine-checkable category.
``reason`` holds internal diagnostic detail; the API layer logs it but only
returns it where doing so leaks nothing (see ``public_detail``).
"""

from __future__ import annotations

from typing import ClassVar


class NexusError(Exception):
    """Base class for all application-level failures."""

    status_code: ClassVar[int] = 500
    category: ClassVar[str] = "error"
    default_message: ClassVar[str] = "Unexpected error"

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        self.message = message or self.default_message
        self.reason = reason
        super().__init__(self.message)

    @property
    def public_detail(self) -> str:
        """Message safe to return to the caller."""
        return self.message


class ConfigurationError(NexusError):
    """Server-side misconfiguration, such as an unset shared secret."""

    status_code = 500
    category = "configuration"
    default_message = "Server misconfigured"

    @property
    def public_detail(self) -> str:
        return self.default_message


class AuthenticationError(NexusError):
    """A signed request failed verification.

    ``reason`` is one of ``missing-headers``, ``expired``, ``replay`` or
    ``invalid-signature``. Callers only ever see an opaque 401.
    """

    status_code = 401
    category = "unauthorized"
    default_message = "Unauthorized"

    MISSING_HEADERS: ClassVar[str] = "missing-headers"
    EXPIRED: ClassVar[str] = "expired"
    REPLAY: ClassVar[str] = "replay"
    INVALID_SIGNATURE: ClassVar[str] = "invalid-signature"

    def __init__(self, reason: str) -> None:
        super().__init__(reason=reason)

    @property
    def public_detail(self) -> str:
        return self.default_message


class NotFoundError(NexusError):
    """Resource is absent or outside the caller's visible scope."""

    status_code = 404
    category = "not_found"
    default_message = "Not found"


class InvalidStateError(NexusError):
    """Resource or claim does not permit the requested transition."""

    status_code = 400
    category = "invalid_state"
    default_message = "Invalid state for this operation"


class CapacityFullError(NexusError):
    """Capacity-bounded resource has no remaining slots."""

    status_code = 400
    category = "full"
    default_message = "No remaining capacity"


class AlreadyClaimedError(NexusError):
    """Requester already holds a claim on this resource."""

    status_code = 409
    category = "already_claimed"
    default_message = "Already claimed"


class ForbiddenError(NexusError):
    """Caller is authenticated but lacks ownership or role."""

    status_code = 403
    category = "forbidden"
    default_message = "Forbidden"


class TransientConflictError(NexusError):
    """Concurrent transaction conflict that survived the automatic retry."""

    status_code = 409
    category = "conflict"
    default_message = "Concurrent update detected, please retry"

    @property
    def public_detail(self) -> str:
        return self.default_message


class BadRequestError(NexusError):
    """Request is well-formed but semantically invalid."""

    status_code = 400
    category = "bad_request"
    default_message = "Bad request"


__all__ = [
    "AlreadyClaimedError",
    "AuthenticationError",
    "BadRequestError",
    "CapacityFullError",
    "ConfigurationError",
    "ForbiddenError",
    "InvalidStateError",
    "NexusError",
    "NotFoundError",
    "TransientConflictError",
]
