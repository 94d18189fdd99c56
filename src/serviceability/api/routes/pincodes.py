"""Pincode lookup, search and serviceability endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from ...data import directory
from ...models.domain import NOT_AVAILABLE
from ...schemas.pincodes import (
    DataSourceStatsResponse,
    PincodeBatchRequest,
    PincodeBatchResponse,
    PostalRecordModel,
    ResolvedAddressModel,
    ServiceabilityResponse,
)
from ...services.hybrid import get_hybrid_resolver

router = APIRouter(prefix="/pincodes", tags=["pincodes"])


def _require_valid(code: str) -> None:
    if not directory.validate(code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid pincode '{code}'. Expected 6 digits not starting with 0.",
        )


@router.get("/popular", response_model=List[PostalRecordModel], status_code=status.HTTP_200_OK)
def list_popular_pincodes() -> List[PostalRecordModel]:
    return [PostalRecordModel.from_record(record) for record in directory.popular_cities()]


@router.get("/search", response_model=List[PostalRecordModel], status_code=status.HTTP_200_OK)
def search_pincodes(q: str = Query(default="", description="City, state or district fragment")) -> List[PostalRecordModel]:
    return [PostalRecordModel.from_record(record) for record in directory.search(q)]


@router.post("/batch", response_model=PincodeBatchResponse, status_code=status.HTTP_200_OK)
async def batch_resolve_pincodes(payload: PincodeBatchRequest) -> PincodeBatchResponse:
    try:
        results = await get_hybrid_resolver().batch_resolve(payload.codes)
    except Exception as exc:
        logging.exception(f"Error resolving pincode batch: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to resolve pincodes: {str(exc)}",
        ) from exc
    return PincodeBatchResponse(
        requested=len(payload.codes),
        resolved=len(results),
        items=[ResolvedAddressModel.from_resolved(resolved) for resolved in results],
    )


@router.post("/stats", response_model=DataSourceStatsResponse, status_code=status.HTTP_200_OK)
async def pincode_source_stats(payload: PincodeBatchRequest) -> DataSourceStatsResponse:
    try:
        stats = await get_hybrid_resolver().data_source_stats(payload.codes)
    except Exception as exc:
        logging.exception(f"Error computing pincode source stats: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute stats: {str(exc)}",
        ) from exc
    return DataSourceStatsResponse(**stats)


@router.get("/{code}/serviceability", response_model=ServiceabilityResponse, status_code=status.HTTP_200_OK)
async def get_pincode_serviceability(code: str) -> ServiceabilityResponse:
    _require_valid(code)
    try:
        resolved = await get_hybrid_resolver().resolve(code)
    except Exception as exc:
        logging.exception(f"Error checking serviceability for {code}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to check serviceability: {str(exc)}",
        ) from exc
    if resolved is None:
        return ServiceabilityResponse(code=code, serviceable=False, shipping_cost=0, delivery_time=NOT_AVAILABLE)
    return ServiceabilityResponse(
        code=code,
        serviceable=resolved.serviceable,
        shipping_cost=resolved.shipping_cost,
        delivery_time=resolved.delivery_time or NOT_AVAILABLE,
    )


@router.get("/{code}", response_model=ResolvedAddressModel, status_code=status.HTTP_200_OK)
async def get_pincode(code: str) -> ResolvedAddressModel:
    _require_valid(code)
    try:
        resolved = await get_hybrid_resolver().resolve(code)
    except Exception as exc:
        logging.exception(f"Error resolving pincode {code}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to resolve pincode: {str(exc)}",
        ) from exc
    if resolved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not determine serviceability for pincode {code}",
        )
    return ResolvedAddressModel.from_resolved(resolved)
