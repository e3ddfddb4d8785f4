"""Signed HTTP client for the internal ads API.

Used by the ads component (and tests) to push sponsored posts into the
campus service. Every call carries ``X-Timestamp``/``X-Signature`` headers
computed over the exact bytes that are sent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from nexus_campus.core.errors import ConfigurationError
from nexus_campus.core.settings import settings
from nexus_campus.services.signing import canonical_json, signed_headers

logger = logging.getLogger(__name__)

INTERNAL_ADS_PATH = "/internal/ads"


class AdsClientError(RuntimeError):
    """Raised when the campus service rejects an internal ads call."""

    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"Internal ads call failed with {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass(frozen=True)
class AdsClientConfig:
    base_url: str
    secret: str | None
    timeout_seconds: float = 10.0


class AdsServiceClient:
    """Thin wrapper over :class:`httpx.Client` that signs every request."""

    def __init__(
        self,
        config: AdsClientConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config or AdsClientConfig(base_url="http://localhost:8000", secret=settings.ads_hmac_secret)
        if not self.config.secret:
            raise ConfigurationError(reason="ads client has no HMAC secret")
        self._client = http_client or httpx.Client(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> AdsServiceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        timestamp: int | None = None,
    ) -> httpx.Response:
        """Send one signed request and return the raw response."""
        if params:
            path = f"{path}?{urlencode(params)}"
        headers = signed_headers(self.config.secret, method, path, body, timestamp)
        content = None
        if body is not None:
            content = canonical_json(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        response = self._client.request(method, path, content=content, headers=headers)
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        if response.is_error:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise AdsClientError(response.status_code, detail)
        return response.json()

    def create_ad(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._json(self.request("POST", INTERNAL_ADS_PATH, body=dict(payload)))

    def update_ad(self, ad_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        return self._json(self.request("PATCH", f"{INTERNAL_ADS_PATH}/{ad_id}", body=dict(changes)))

    def ad_stats(self, ad_id: str) -> dict[str, Any]:
        return self._json(self.request("GET", f"{INTERNAL_ADS_PATH}/{ad_id}/stats"))
