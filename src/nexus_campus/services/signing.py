"""HMAC signing and verification for internal server-to-server requests.

Wire contract: the signer sends ``X-Timestamp`` (decimal epoch seconds) and
``X-Signature`` (lowercase hex HMAC-SHA256 of the canonical payload)::

    METHOD:path?query:timestamp:body-json-or-empty

The body is serialized with :func:`canonical_json`; signer and verifier must
both use it.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from collections.abc import Callable
from typing import Any, Final

from nexus_campus.core.errors import AuthenticationError, ConfigurationError
from nexus_campus.services.replay import ReplayCache

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER: Final[str] = "X-Timestamp"
SIGNATURE_HEADER: Final[str] = "X-Signature"
WINDOW_SECONDS: Final[int] = 300


def canonical_json(body: Any) -> str:
    """Serialize ``body`` deterministically; an absent body becomes ``""``."""
    if body is None:
        return ""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def build_payload(method: str, path: str, timestamp: str, body: Any) -> str:
    """Build the exact string that is signed for a request."""
    return f"{method.upper()}:{path}:{timestamp}:{canonical_json(body)}"


def sign(secret: str, payload: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``payload`` under ``secret``."""
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def signed_headers(
    secret: str,
    method: str,
    path: str,
    body: Any = None,
    timestamp: int | None = None,
) -> dict[str, str]:
    """Return the headers a caller must attach to a signed request."""
    ts = str(int(time.time()) if timestamp is None else int(timestamp))
    return {
        TIMESTAMP_HEADER: ts,
        SIGNATURE_HEADER: sign(secret, build_payload(method, path, ts, body)),
    }


class RequestVerifier:
    """Verifies signed requests and rejects replays within the validity window."""

    def __init__(
        self,
        secret: str | None,
        cache: ReplayCache,
        *,
        window: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._cache = cache
        self._window = window
        self._clock = clock

    def verify(
        self,
        method: str,
        path: str,
        body: Any,
        timestamp: str | None,
        signature: str | None,
    ) -> None:
        """Accept the request or raise.

        Args:
            method: HTTP method of the request.
            path: Request path including the query string, if any.
            body: Parsed JSON body, or None when the request had none.
            timestamp: Raw ``X-Timestamp`` header value.
            signature: Raw ``X-Signature`` header value.

        Raises:
            ConfigurationError: No shared secret is configured.
            AuthenticationError: Headers missing, timestamp outside the window,
                signature replayed, or signature mismatch.
        """
        if not self._secret:
            logger.error("Signed request rejected: shared secret is not configured")
            raise ConfigurationError("Server HMAC not configured")

        if not timestamp or not signature:
            raise self._reject(AuthenticationError.MISSING_HEADERS, method, path)

        now = int(self._clock())
        try:
            ts = float(timestamp)
        except ValueError:
            ts = math.nan
        if not math.isfinite(ts) or abs(now - ts) > self._window:
            raise self._reject(AuthenticationError.EXPIRED, method, path)

        self._cache.purge(now)
        if self._cache.contains(signature, now):
            raise self._reject(AuthenticationError.REPLAY, method, path)

        expected = sign(self._secret, build_payload(method, path, timestamp, body))
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            raise self._reject(AuthenticationError.INVALID_SIGNATURE, method, path)

        if not self._cache.remember(signature, now + self._window, now):
            raise self._reject(AuthenticationError.REPLAY, method, path)

    @staticmethod
    def _reject(reason: str, method: str, path: str) -> AuthenticationError:
        logger.warning("Signed request rejected (%s): %s %s", reason, method.upper(), path)
        return AuthenticationError(reason)
