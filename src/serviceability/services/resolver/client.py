"""Remote pincode resolver: cached, rate-limited, priority-ordered fallthrough."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence

import httpx

from ...config import SourceConfig, Settings, build_source_configs, settings
from ...data.directory import unserviceable_codes, validate
from ...models.domain import RemoteRecord
from .cache import ResolverCache
from .derivation import ServiceDenylist
from .models import ResolutionTrace, SourceAttempt, SourceFailureReason, SourceStatus
from .rate_limit import RateLimiter
from .sources import get_source

logger = logging.getLogger(__name__)

# Expected outcomes already visible through source_status(); not worth a warning per lookup.
QUIET_REASONS = (
    SourceFailureReason.DISABLED,
    SourceFailureReason.MISSING_CREDENTIALS,
    SourceFailureReason.EMPTY_PAYLOAD,
)


def build_denylist(config: Settings | None = None) -> ServiceDenylist:
    """Denylist from settings, optionally seeded with the directory's unserviceable codes."""
    config = config or settings
    pincodes = set(config.unserviceable_pincodes)
    if config.deny_directory_unserviceable:
        pincodes |= unserviceable_codes()
    return ServiceDenylist.build(pincodes, config.unserviceable_states)


class RemoteResolver:
    """Ask the configured upstream APIs about a pincode, first answer wins.

    The cache and rate limiter are owned by the instance so tests and admin
    resets can start from a clean slate with :meth:`clear`.
    """

    def __init__(
        self,
        sources: Sequence[SourceConfig] | None = None,
        cache: ResolverCache | None = None,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        denylist: ServiceDenylist | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._sources: Dict[str, SourceConfig] = {
            config.name: config for config in (sources if sources is not None else build_source_configs())
        }
        self.cache = cache or ResolverCache(ttl_seconds=settings.cache_ttl_seconds)
        self.rate_limiter = rate_limiter or RateLimiter(window_seconds=settings.rate_limit_window_seconds)
        self.client = client
        self.denylist = denylist if denylist is not None else build_denylist()
        self.user_agent = user_agent or settings.user_agent
        self._inflight: Dict[str, asyncio.Task] = {}

    @property
    def sources(self) -> list[SourceConfig]:
        """Source configs in the order they are tried."""
        return sorted(self._sources.values(), key=lambda config: config.priority)

    async def fetch(self, code: str) -> Optional[RemoteRecord]:
        trace = await self.fetch_with_trace(code)
        return trace.record

    async def fetch_with_trace(self, code: str) -> ResolutionTrace:
        if not validate(code):
            return ResolutionTrace(code=str(code), record=None)

        cached = await self.cache.get(code)
        if cached is not None:
            return ResolutionTrace(code=code, record=cached, cached=True)

        # Concurrent lookups for the same pincode share one upstream round.
        task = self._inflight.get(code)
        if task is None:
            task = asyncio.ensure_future(self._fetch_uncached(code))
            self._inflight[code] = task
            task.add_done_callback(lambda _: self._inflight.pop(code, None))
        return await asyncio.shield(task)

    async def _fetch_uncached(self, code: str) -> ResolutionTrace:
        trace = ResolutionTrace(code=code, record=None)
        # Snapshot so admin edits during the lookup do not change its course.
        for config in self.sources:
            attempt = await self._attempt(config, code)
            trace.attempts.append(attempt)
            if attempt.ok:
                trace.record = attempt.record
                await self.cache.set(code, attempt.record)
                logger.info(f"Resolved pincode {code} via {config.name}")
                return trace
            if attempt.reason in QUIET_REASONS:
                logger.debug(f"Pincode source {config.name} skipped for {code}: {attempt.reason.value}")
            else:
                logger.warning(f"Pincode source {config.name} failed for {code}: {attempt.reason.value} ({attempt.detail})")

        logger.info(f"No remote source resolved pincode {code}")
        return trace

    async def _attempt(self, config: SourceConfig, code: str) -> SourceAttempt:
        if not config.enabled:
            return SourceAttempt.failed(config.name, SourceFailureReason.DISABLED)
        missing = config.missing_credentials()
        if missing:
            return SourceAttempt.failed(
                config.name,
                SourceFailureReason.MISSING_CREDENTIALS,
                f"source disabled: missing {', '.join(missing)}",
            )
        if not await self.rate_limiter.acquire(config.name, config.rate_limit_per_minute):
            return SourceAttempt.failed(
                config.name,
                SourceFailureReason.RATE_LIMITED,
                f"limit of {config.rate_limit_per_minute} requests per window reached",
            )
        source = get_source(config, self.user_agent)
        try:
            return await source.lookup(code, self.client, self.denylist)
        except Exception as exc:
            logger.exception(f"Unexpected error querying {config.name} for {code}")
            return SourceAttempt.failed(config.name, SourceFailureReason.BAD_PAYLOAD, str(exc))

    async def check_health(self, config: SourceConfig, pincode: str | None = None) -> SourceAttempt:
        """Look up a known pincode on one source, counted against its rate limit."""
        attempt = await self._attempt(config, pincode or settings.health_check_pincode)
        if not attempt.ok:
            logger.info(f"Health check for {config.name} failed: {attempt.reason.value} ({attempt.detail})")
        return attempt

    def source_status(self) -> list[SourceStatus]:
        statuses: list[SourceStatus] = []
        for config in self.sources:
            missing = config.missing_credentials()
            warnings = [f"{config.name} {field} not configured" for field in missing]
            statuses.append(
                SourceStatus(
                    name=config.name,
                    enabled=config.enabled,
                    configured=not missing,
                    priority=config.priority,
                    rate_limit_per_minute=config.rate_limit_per_minute,
                    timeout_ms=config.timeout_ms,
                    warnings=warnings,
                )
            )
        return statuses

    def get_source_config(self, name: str) -> SourceConfig:
        try:
            return self._sources[name]
        except KeyError:
            raise KeyError(f"Unknown pincode source '{name}'") from None

    def update_source(self, name: str, **changes) -> SourceConfig:
        """Replace a source config with an updated copy."""
        current = self.get_source_config(name)
        unknown = set(changes) - set(SourceConfig.model_fields) - {"name"}
        if unknown:
            raise ValueError(f"Unknown source settings: {', '.join(sorted(unknown))}")
        changes.pop("name", None)
        updated = SourceConfig.model_validate({**current.model_dump(), **changes})
        self._sources[name] = updated
        logger.info(f"Updated pincode source {name}: {sorted(changes)}")
        return updated

    def cache_stats(self) -> dict:
        return self.cache.stats()

    def clear(self) -> None:
        cleared = self.cache.clear()
        self.rate_limiter.clear()
        logger.info(f"Cleared resolver cache ({cleared} entries) and rate limits")
