"""Resolver bookkeeping models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import RemoteRecord


class SourceFailureReason(str, Enum):
    DISABLED = "disabled"
    MISSING_CREDENTIALS = "missing_credentials"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    BAD_PAYLOAD = "bad_payload"
    EMPTY_PAYLOAD = "empty_payload"


@dataclass(slots=True)
class SourceAttempt:
    """Outcome of asking one upstream source about one pincode."""

    source: str
    record: Optional[RemoteRecord] = None
    reason: Optional[SourceFailureReason] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def failed(cls, source: str, reason: SourceFailureReason, detail: str | None = None) -> "SourceAttempt":
        return cls(source=source, reason=reason, detail=detail)


@dataclass(slots=True)
class ResolutionTrace:
    code: str
    record: Optional[RemoteRecord]
    attempts: List[SourceAttempt] = field(default_factory=list)
    cached: bool = False


@dataclass(slots=True)
class CacheEntry:
    record: RemoteRecord
    stored_at: float


@dataclass(slots=True)
class RateLimitCounter:
    count: int
    reset_at: float


@dataclass(slots=True)
class SourceStatus:
    name: str
    enabled: bool
    configured: bool
    priority: int
    rate_limit_per_minute: int
    timeout_ms: int
    warnings: List[str] = field(default_factory=list)
