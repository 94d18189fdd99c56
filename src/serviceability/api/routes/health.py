"""Health endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, status

from ...schemas.sources import SourceHealthModel
from ...services.hybrid import get_hybrid_resolver

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/sources", status_code=status.HTTP_200_OK)
async def health_sources() -> dict:
    """Look up a known pincode on every upstream source.

    Checks count against each source's rate limit; a source whose window is
    used up is reported as rate_limited without a network call.
    """
    remote = get_hybrid_resolver().remote
    configs = remote.sources
    outcomes = await asyncio.gather(
        *(remote.check_health(config) for config in configs),
        return_exceptions=True,
    )
    sources = []
    for config, outcome in zip(configs, outcomes):
        if isinstance(outcome, BaseException):
            logging.error(f"Health check for {config.name} raised: {outcome!r}")
            entry = SourceHealthModel(name=config.name, enabled=config.enabled, healthy=False, detail=str(outcome))
        else:
            entry = SourceHealthModel(
                name=config.name,
                enabled=config.enabled,
                healthy=outcome.ok,
                reason=outcome.reason.value if outcome.reason else None,
                detail=outcome.detail,
            )
        sources.append(entry.model_dump())
    return {
        "healthy": any(entry["healthy"] for entry in sources),
        "sources": sources,
    }
