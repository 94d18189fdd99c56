"""Pydantic request/response models for pincode endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator

from ..models.domain import PostalRecord, ResolvedAddress
from ..services.hybrid import describe_confidence, describe_source

MAX_BATCH_CODES = 500


class PostalRecordModel(BaseModel):
    code: str
    state: str
    city: str
    district: str
    region: str
    delivery_time: str
    shipping_cost: float
    serviceable: bool

    @classmethod
    def from_record(cls, record: PostalRecord) -> "PostalRecordModel":
        return cls(
            code=record.code,
            state=record.state,
            city=record.city,
            district=record.district,
            region=record.region,
            delivery_time=record.delivery_time,
            shipping_cost=record.shipping_cost,
            serviceable=record.serviceable,
        )


class ResolvedAddressModel(PostalRecordModel):
    source: Literal["local", "api", "hybrid"]
    confidence: Literal["high", "medium", "low"]
    last_updated: datetime
    source_description: str
    confidence_description: str

    @classmethod
    def from_resolved(cls, resolved: ResolvedAddress) -> "ResolvedAddressModel":
        base = PostalRecordModel.from_record(resolved).model_dump()
        return cls(
            **base,
            source=resolved.source,
            confidence=resolved.confidence,
            last_updated=resolved.last_updated,
            source_description=describe_source(resolved.source),
            confidence_description=describe_confidence(resolved.confidence),
        )


class ServiceabilityResponse(BaseModel):
    code: str
    serviceable: bool
    shipping_cost: float
    delivery_time: str


class PincodeBatchRequest(BaseModel):
    codes: List[str] = Field(..., description="Pincodes to resolve, in the order results should come back.")

    @field_validator("codes")
    @classmethod
    def validate_codes(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_BATCH_CODES:
            raise ValueError(f"At most {MAX_BATCH_CODES} pincodes can be resolved per request")
        return [code.strip() for code in value]


class PincodeBatchResponse(BaseModel):
    requested: int
    resolved: int
    items: List[ResolvedAddressModel]


class DataSourceStatsResponse(BaseModel):
    total: int
    local: int
    api: int
    hybrid: int
    serviceable: int
    average_confidence: float
