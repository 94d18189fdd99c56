"""Merge the local pincode directory with remote lookups."""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from ..config import settings
from ..data import directory
from ..models.domain import NOT_AVAILABLE, PostalRecord, RemoteRecord, ResolvedAddress
from .resolver import RemoteResolver

logger = logging.getLogger(__name__)

MERGED_FIELDS = ("state", "city", "district", "region", "delivery_time", "shipping_cost")

SOURCE_LABELS = {
    "local": "Local Database",
    "api": "Government API",
    "hybrid": "Local + API (Merged)",
}

CONFIDENCE_LABELS = {
    "high": "High accuracy - data verified from multiple sources",
    "medium": "Medium accuracy - data from API source",
    "low": "Low accuracy - data from local database only",
}

CONFIDENCE_WEIGHTS = {"high": 3, "medium": 2, "low": 1}


def _postal_fields(record: PostalRecord) -> dict:
    return {key: getattr(record, key) for key in PostalRecord.__dataclass_fields__}


def merge_records(
    local: Optional[PostalRecord],
    remote: Optional[RemoteRecord],
) -> Optional[ResolvedAddress]:
    """Combine the two lookups. Remote values win whenever they are present."""
    if local is not None and remote is not None:
        fields = _postal_fields(local)
        for key in MERGED_FIELDS:
            value = getattr(remote, key)
            if value:
                fields[key] = value
        if remote.serviceable is not None:
            fields["serviceable"] = remote.serviceable
        return ResolvedAddress(**fields, source="hybrid", confidence="high", last_updated=remote.fetched_at)
    if remote is not None:
        return ResolvedAddress(
            **_postal_fields(remote),
            source="api",
            confidence="medium",
            last_updated=remote.fetched_at,
        )
    if local is not None:
        return ResolvedAddress(
            **_postal_fields(local),
            source="local",
            confidence="low",
            last_updated=datetime.now(timezone.utc),
        )
    return None


class HybridResolver:
    """Resolve pincodes against the local directory and the remote resolver together."""

    def __init__(
        self,
        remote: RemoteResolver | None = None,
        local_lookup: Callable[[str], Optional[PostalRecord]] | None = None,
        batch_size: int | None = None,
        batch_pause_seconds: float | None = None,
    ) -> None:
        self.remote = remote or RemoteResolver()
        self.local_lookup = local_lookup or directory.lookup
        self.batch_size = batch_size or settings.batch_size
        self.batch_pause_seconds = settings.batch_pause_seconds if batch_pause_seconds is None else batch_pause_seconds

    async def _lookup_local(self, code: str) -> Optional[PostalRecord]:
        return self.local_lookup(code)

    async def resolve(self, code: str) -> Optional[ResolvedAddress]:
        if not directory.validate(code):
            return None

        local, remote = await asyncio.gather(
            self._lookup_local(code),
            self.remote.fetch(code),
            return_exceptions=True,
        )
        if isinstance(local, BaseException):
            logger.error(f"Local directory lookup failed for {code}: {local!r}")
            local = None
        if isinstance(remote, BaseException):
            logger.error(f"Remote lookup failed for {code}: {remote!r}")
            remote = None

        resolved = merge_records(local, remote)
        if resolved is None:
            logger.info(f"Could not determine serviceability for pincode {code}")
        return resolved

    async def is_serviceable(self, code: str) -> bool:
        resolved = await self.resolve(code)
        return bool(resolved and resolved.serviceable)

    async def shipping_cost(self, code: str) -> float:
        resolved = await self.resolve(code)
        return resolved.shipping_cost if resolved else 0

    async def delivery_time(self, code: str) -> str:
        resolved = await self.resolve(code)
        return resolved.delivery_time if resolved and resolved.delivery_time else NOT_AVAILABLE

    async def batch_resolve(self, codes: Sequence[str]) -> list[ResolvedAddress]:
        """Resolve ``codes`` in fixed-size batches, dropping the ones that fail.

        Batches are separated by a pause so a large request does not exhaust
        the upstream rate limits in one burst.
        """
        codes = list(codes)
        results: list[ResolvedAddress] = []
        for start in range(0, len(codes), self.batch_size):
            batch = codes[start : start + self.batch_size]
            outcomes = await asyncio.gather(*(self.resolve(code) for code in batch), return_exceptions=True)
            for code, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning(f"Dropping pincode {code} from batch: {outcome!r}")
                elif outcome is not None:
                    results.append(outcome)
            if start + self.batch_size < len(codes) and self.batch_pause_seconds > 0:
                await asyncio.sleep(self.batch_pause_seconds)
        logger.info(f"Batch resolved {len(results)} of {len(codes)} pincodes")
        return results

    async def data_source_stats(self, codes: Sequence[str]) -> dict:
        results = await self.batch_resolve(codes)
        stats = {"total": len(results), "local": 0, "api": 0, "hybrid": 0, "serviceable": 0, "average_confidence": 0.0}
        confidence_sum = 0
        for resolved in results:
            stats[resolved.source] += 1
            if resolved.serviceable:
                stats["serviceable"] += 1
            confidence_sum += CONFIDENCE_WEIGHTS.get(resolved.confidence, 1)
        if results:
            stats["average_confidence"] = round(confidence_sum / len(results), 2)
        return stats


def describe_source(source: str) -> str:
    return SOURCE_LABELS.get(source, "Unknown")


def describe_confidence(confidence: str) -> str:
    return CONFIDENCE_LABELS.get(confidence, "Unknown accuracy")


@functools.lru_cache(maxsize=1)
def get_hybrid_resolver() -> HybridResolver:
    """Process-wide resolver shared by the API routes."""
    return HybridResolver()
