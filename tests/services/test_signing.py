"""Tests for HMAC request signing and verification."""

import pytest

from nexus_campus.core.errors import AuthenticationError, ConfigurationError
from nexus_campus.services.replay import InMemoryReplayCache
from nexus_campus.services.signing import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    RequestVerifier,
    build_payload,
    canonical_json,
    sign,
    signed_headers,
)

SECRET = "shared-secret"
NOW = 1_700_000_000
PATH = "/internal/ads"
BODY = {"ad_campaign_id": "c1", "creative": {"headline": "Hi"}}


class FixedClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def verifier(clock: FixedClock) -> RequestVerifier:
    return RequestVerifier(SECRET, InMemoryReplayCache(), clock=clock)


def _verify(verifier: RequestVerifier, headers: dict[str, str], *, method: str = "POST",
            path: str = PATH, body: object = BODY) -> None:
    verifier.verify(method, path, body, headers.get(TIMESTAMP_HEADER), headers.get(SIGNATURE_HEADER))


def test_canonical_json_is_compact_and_empty_for_none() -> None:
    assert canonical_json(None) == ""
    assert canonical_json({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
    assert canonical_json({"name": "café"}) == '{"name":"café"}'


def test_payload_layout() -> None:
    assert build_payload("post", "/internal/ads?x=1", "123", {"a": 1}) == 'POST:/internal/ads?x=1:123:{"a":1}'
    assert build_payload("GET", "/internal/ads/1/stats", "123", None) == "GET:/internal/ads/1/stats:123:"


def test_signature_is_lowercase_hex_sha256() -> None:
    signature = sign(SECRET, "payload")
    assert len(signature) == 64
    assert signature == signature.lower()
    int(signature, 16)


def test_valid_request_is_accepted(verifier: RequestVerifier) -> None:
    _verify(verifier, signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW))


def test_replayed_signature_is_rejected(verifier: RequestVerifier) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    _verify(verifier, headers)
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.REPLAY


def test_replay_entry_expires_after_window(verifier: RequestVerifier, clock: FixedClock) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    _verify(verifier, headers)
    # Once the entry is purged the timestamp itself is stale.
    clock.now = NOW + 301
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.EXPIRED


@pytest.mark.parametrize("offset", [-301, 301])
def test_timestamp_outside_window_is_expired(verifier: RequestVerifier, offset: int) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW + offset)
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.EXPIRED


@pytest.mark.parametrize("offset", [-300, 300])
def test_timestamp_on_window_edge_is_accepted(verifier: RequestVerifier, offset: int) -> None:
    _verify(verifier, signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW + offset))


def test_expired_wins_over_bad_signature(verifier: RequestVerifier) -> None:
    headers = {TIMESTAMP_HEADER: str(NOW - 1000), SIGNATURE_HEADER: "00" * 32}
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.EXPIRED


@pytest.mark.parametrize("timestamp", ["not-a-number", "nan", "inf"])
def test_unparseable_timestamp_is_expired(verifier: RequestVerifier, timestamp: str) -> None:
    headers = {TIMESTAMP_HEADER: timestamp, SIGNATURE_HEADER: "ab" * 32}
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.EXPIRED


@pytest.mark.parametrize("missing", [TIMESTAMP_HEADER, SIGNATURE_HEADER])
def test_missing_header_is_rejected(verifier: RequestVerifier, missing: str) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    headers.pop(missing)
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.MISSING_HEADERS


def test_flipped_signature_character_is_rejected(verifier: RequestVerifier) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    sig = headers[SIGNATURE_HEADER]
    headers[SIGNATURE_HEADER] = ("1" if sig[0] != "1" else "2") + sig[1:]
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.INVALID_SIGNATURE


@pytest.mark.parametrize(
    ("method", "path", "body"),
    [
        ("PATCH", PATH, BODY),
        ("POST", PATH + "?dry_run=1", BODY),
        ("POST", PATH, {**BODY, "ad_campaign_id": "c2"}),
        ("POST", PATH, None),
    ],
)
def test_tampered_request_is_rejected(
    verifier: RequestVerifier, method: str, path: str, body: object
) -> None:
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers, method=method, path=path, body=body)
    assert exc_info.value.reason == AuthenticationError.INVALID_SIGNATURE


def test_wrong_secret_is_rejected(verifier: RequestVerifier) -> None:
    headers = signed_headers("other-secret", "POST", PATH, BODY, timestamp=NOW)
    with pytest.raises(AuthenticationError) as exc_info:
        _verify(verifier, headers)
    assert exc_info.value.reason == AuthenticationError.INVALID_SIGNATURE


def test_rejected_signature_is_not_remembered(clock: FixedClock) -> None:
    cache = InMemoryReplayCache()
    verifier = RequestVerifier(SECRET, cache, clock=clock)
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    with pytest.raises(AuthenticationError):
        _verify(verifier, headers, path=PATH + "/other")
    assert len(cache) == 0


def test_missing_secret_is_configuration_error(clock: FixedClock) -> None:
    verifier = RequestVerifier(None, InMemoryReplayCache(), clock=clock)
    headers = signed_headers(SECRET, "POST", PATH, BODY, timestamp=NOW)
    with pytest.raises(ConfigurationError):
        _verify(verifier, headers)


def test_authentication_error_has_opaque_public_detail() -> None:
    for reason in ("missing-headers", "expired", "replay", "invalid-signature"):
        error = AuthenticationError(reason)
        assert error.status_code == 401
        assert error.public_detail == "Unauthorized"
