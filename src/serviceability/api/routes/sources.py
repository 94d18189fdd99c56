"""Admin endpoints for the upstream pincode sources."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, HTTPException, status

from ...data import directory
from ...schemas.sources import (
    CacheStatsResponse,
    ResolutionTraceResponse,
    SourceAttemptModel,
    SourceStatusModel,
    SourceUpdateRequest,
)
from ...services.hybrid import get_hybrid_resolver

router = APIRouter(prefix="/sources", tags=["sources"])


def _status_for(name: str) -> SourceStatusModel:
    for source_status in get_hybrid_resolver().remote.source_status():
        if source_status.name == name:
            return SourceStatusModel(**asdict(source_status))
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown pincode source '{name}'")


@router.get("", response_model=List[SourceStatusModel], status_code=status.HTTP_200_OK)
def list_sources() -> List[SourceStatusModel]:
    return [SourceStatusModel(**asdict(entry)) for entry in get_hybrid_resolver().remote.source_status()]


@router.get("/cache", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
def get_cache_stats() -> CacheStatsResponse:
    return CacheStatsResponse(**get_hybrid_resolver().remote.cache_stats())


@router.delete("/cache", status_code=status.HTTP_200_OK)
def clear_cache() -> dict:
    """Drop cached lookups and reset every source's rate-limit window."""
    remote = get_hybrid_resolver().remote
    cleared = remote.cache_stats()["size"]
    remote.clear()
    return {"status": "cleared", "entries_removed": cleared}


@router.get("/trace/{code}", response_model=ResolutionTraceResponse, status_code=status.HTTP_200_OK)
async def trace_pincode(code: str) -> ResolutionTraceResponse:
    """Run a remote lookup and report what each source did."""
    if not directory.validate(code):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid pincode '{code}'")
    trace = await get_hybrid_resolver().remote.fetch_with_trace(code)
    return ResolutionTraceResponse(
        code=trace.code,
        resolved=trace.record is not None,
        cached=trace.cached,
        source=trace.record.source if trace.record else None,
        fetched_at=trace.record.fetched_at if trace.record else None,
        attempts=[
            SourceAttemptModel(
                source=attempt.source,
                ok=attempt.ok,
                reason=attempt.reason.value if attempt.reason else None,
                detail=attempt.detail,
            )
            for attempt in trace.attempts
        ],
    )


@router.patch("/{name}", response_model=SourceStatusModel, status_code=status.HTTP_200_OK)
def update_source(name: str, payload: SourceUpdateRequest) -> SourceStatusModel:
    changes = payload.model_dump(exclude_unset=True)
    try:
        get_hybrid_resolver().remote.update_source(name, **changes)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown pincode source '{name}'") from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error updating pincode source {name}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update source: {str(exc)}",
        ) from exc
    return _status_for(name)
