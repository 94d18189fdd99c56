"""Admin models for upstream pincode sources."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SourceStatusModel(BaseModel):
    name: str
    enabled: bool
    configured: bool
    priority: int
    rate_limit_per_minute: int
    timeout_ms: int
    warnings: List[str] = Field(default_factory=list)


class SourceUpdateRequest(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    resource_id: Optional[str] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    rate_limit_per_minute: Optional[int] = Field(default=None, ge=0)
    timeout_ms: Optional[int] = Field(default=None, ge=1)


class CacheStatsResponse(BaseModel):
    size: int
    entries: List[str]


class SourceAttemptModel(BaseModel):
    source: str
    ok: bool
    reason: Optional[str] = None
    detail: Optional[str] = None


class ResolutionTraceResponse(BaseModel):
    code: str
    resolved: bool
    cached: bool
    source: Optional[str] = None
    fetched_at: Optional[datetime] = None
    attempts: List[SourceAttemptModel]


class SourceHealthModel(BaseModel):
    name: str
    enabled: bool
    healthy: bool
    reason: Optional[str] = None
    detail: Optional[str] = None
