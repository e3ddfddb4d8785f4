# src/nexus_campus/services/__init__.py
"""Business logic services for the Nexus Campus application."""

from .claims import ClaimOutcome, ClaimResult, claim_slot, transition_claim
from .replay import InMemoryReplayCache, RedisReplayCache, get_replay_cache
from .signing import RequestVerifier, signed_headers

__all__ = [
    "ClaimOutcome",
    "ClaimResult",
    "claim_slot",
    "transition_claim",
    "InMemoryReplayCache",
    "RedisReplayCache",
    "get_replay_cache",
    "RequestVerifier",
    "signed_headers",
]
