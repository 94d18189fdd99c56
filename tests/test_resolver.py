import asyncio
import logging

import httpx
import pytest

from src.serviceability.config import Settings
from src.serviceability.services.resolver import (
    RemoteResolver,
    ResolverCache,
    ServiceDenylist,
    SourceFailureReason,
    build_denylist,
)

from tests.upstream import (
    DATAGOV_HOST,
    POSTAL_HOST,
    UpstreamStub,
    datagov_config,
    datagov_payload,
    postal_config,
    postal_only,
    postal_payload,
)


def _both_answer() -> UpstreamStub:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == DATAGOV_HOST:
            return httpx.Response(200, json=datagov_payload(statename="DELHI", districtname="Central Delhi"))
        return httpx.Response(200, json=postal_payload())

    return UpstreamStub(handler)


def _resolver(stub: UpstreamStub, *sources, **kwargs) -> RemoteResolver:
    return RemoteResolver(
        sources=list(sources),
        client=stub.client(),
        denylist=kwargs.pop("denylist", ServiceDenylist()),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_second_fetch_within_ttl_is_served_from_cache():
    stub = postal_only()
    resolver = _resolver(stub, postal_config())

    first = await resolver.fetch("110001")
    trace = await resolver.fetch_with_trace("110001")

    assert first is not None
    assert trace.cached is True
    assert trace.record == first
    assert stub.hits(POSTAL_HOST) == 1
    assert resolver.cache_stats() == {"size": 1, "entries": ["110001"]}


@pytest.mark.asyncio
async def test_expired_cache_entry_triggers_a_new_request():
    now = [0.0]
    stub = postal_only()
    resolver = _resolver(stub, postal_config(), cache=ResolverCache(ttl_seconds=10, clock=lambda: now[0]))

    await resolver.fetch("110001")
    now[0] = 10.0
    await resolver.fetch("110001")

    assert stub.hits(POSTAL_HOST) == 2


@pytest.mark.asyncio
async def test_lowest_priority_number_wins_without_merging():
    stub = _both_answer()
    resolver = _resolver(stub, postal_config(), datagov_config())

    record = await resolver.fetch("110001")

    assert record.source == "data.gov.in"
    assert record.state == "DELHI"
    assert stub.hits(POSTAL_HOST) == 0


@pytest.mark.asyncio
async def test_priority_is_configurable():
    stub = _both_answer()
    resolver = _resolver(stub, datagov_config(priority=5), postal_config(priority=1))

    record = await resolver.fetch("110001")

    assert record.source == "postalpincode.in"
    assert stub.hits(DATAGOV_HOST) == 0


@pytest.mark.asyncio
async def test_failed_source_falls_through_to_next():
    stub = postal_only()  # data.gov.in answers 503
    resolver = _resolver(stub, datagov_config(), postal_config())

    trace = await resolver.fetch_with_trace("110001")

    assert trace.record.source == "postalpincode.in"
    assert [attempt.reason for attempt in trace.attempts] == [SourceFailureReason.HTTP_ERROR, None]


@pytest.mark.asyncio
async def test_source_without_credentials_is_skipped():
    stub = postal_only()
    resolver = _resolver(stub, datagov_config(api_key=None, resource_id=None), postal_config())

    trace = await resolver.fetch_with_trace("110001")

    skipped = trace.attempts[0]
    assert skipped.reason is SourceFailureReason.MISSING_CREDENTIALS
    assert "api_key" in skipped.detail and "resource_id" in skipped.detail
    assert stub.hits(DATAGOV_HOST) == 0
    assert trace.record is not None


@pytest.mark.asyncio
async def test_missing_credentials_are_logged_at_debug(caplog: pytest.LogCaptureFixture):
    resolver = _resolver(postal_only(), datagov_config(api_key=None), postal_config())

    with caplog.at_level(logging.DEBUG):
        await resolver.fetch("110001")
        await resolver.fetch("400001")

    skipped = [record for record in caplog.records if "missing_credentials" in record.getMessage()]
    assert len(skipped) == 2
    assert all(record.levelno == logging.DEBUG for record in skipped)


@pytest.mark.asyncio
async def test_all_sources_disabled_returns_none_without_requests():
    stub = postal_only()
    resolver = _resolver(stub, datagov_config(enabled=False), postal_config(enabled=False))

    trace = await resolver.fetch_with_trace("110001")

    assert trace.record is None
    assert [attempt.reason for attempt in trace.attempts] == [SourceFailureReason.DISABLED] * 2
    assert stub.requests == []


@pytest.mark.asyncio
async def test_invalid_code_never_reaches_a_source():
    stub = postal_only()
    resolver = _resolver(stub, postal_config())

    assert await resolver.fetch("012345") is None
    assert await resolver.fetch("11001") is None
    assert stub.requests == []


@pytest.mark.asyncio
async def test_all_sources_failing_returns_none():
    stub = UpstreamStub(lambda request: httpx.Response(500))
    resolver = _resolver(stub, datagov_config(), postal_config())

    assert await resolver.fetch("999999") is None
    assert resolver.cache_stats()["size"] == 0


@pytest.mark.asyncio
async def test_rate_limited_source_fails_fast_and_falls_through():
    stub = _both_answer()
    resolver = _resolver(stub, datagov_config(rate_limit_per_minute=2), postal_config())

    records = [await resolver.fetch(code) for code in ("110001", "110017", "110092")]
    trace = await resolver.fetch_with_trace("400001")

    assert [record.source for record in records] == ["data.gov.in", "data.gov.in", "postalpincode.in"]
    assert stub.hits(DATAGOV_HOST) == 2
    assert stub.hits(POSTAL_HOST) == 2
    assert trace.attempts[0].reason is SourceFailureReason.RATE_LIMITED


@pytest.mark.asyncio
async def test_every_source_rate_limited_returns_none():
    stub = postal_only()
    resolver = _resolver(stub, postal_config(rate_limit_per_minute=1))

    assert await resolver.fetch("110001") is not None
    assert await resolver.fetch("400001") is None
    assert stub.hits(POSTAL_HOST) == 1


@pytest.mark.asyncio
async def test_concurrent_fetches_for_one_code_share_a_request():
    stub = postal_only()
    resolver = _resolver(stub, postal_config())

    records = await asyncio.gather(*(resolver.fetch("110001") for _ in range(5)))

    assert all(record is not None for record in records)
    assert stub.hits(POSTAL_HOST) == 1


@pytest.mark.asyncio
async def test_denylist_makes_remote_record_unserviceable():
    stub = postal_only(postal_payload(state="Tripura", name="Agartala", district="West Tripura"))
    resolver = _resolver(stub, postal_config(), denylist=ServiceDenylist.build(["799001"]))

    record = await resolver.fetch("799001")

    assert record.serviceable is False
    assert record.shipping_cost == 0


@pytest.mark.asyncio
async def test_clear_resets_cache_and_rate_limits():
    stub = postal_only()
    resolver = _resolver(stub, postal_config(rate_limit_per_minute=1))
    await resolver.fetch("110001")

    resolver.clear()

    assert resolver.cache_stats()["size"] == 0
    assert await resolver.fetch("110001") is not None
    assert stub.hits(POSTAL_HOST) == 2


def test_source_status_reports_missing_credentials():
    resolver = RemoteResolver(sources=[postal_config(), datagov_config(api_key=None)], denylist=ServiceDenylist())

    statuses = resolver.source_status()

    assert [entry.name for entry in statuses] == ["data.gov.in", "postalpincode.in"]
    assert statuses[0].configured is False
    assert statuses[0].warnings == ["data.gov.in api_key not configured"]
    assert statuses[1].configured is True


def test_update_source_replaces_config():
    resolver = RemoteResolver(sources=[postal_config()], denylist=ServiceDenylist())

    updated = resolver.update_source("postalpincode.in", enabled=False, rate_limit_per_minute=5)

    assert updated.enabled is False
    assert resolver.get_source_config("postalpincode.in").rate_limit_per_minute == 5


def test_update_source_rejects_unknown_names_and_fields():
    resolver = RemoteResolver(sources=[postal_config()], denylist=ServiceDenylist())

    with pytest.raises(KeyError):
        resolver.update_source("pincodeapi.com", enabled=False)
    with pytest.raises(ValueError):
        resolver.update_source("postalpincode.in", colour="blue")
    with pytest.raises(ValueError):
        resolver.update_source("postalpincode.in", timeout_ms=0)


def test_default_denylist_includes_directory_unserviceable_codes():
    seeded = build_denylist(Settings(unserviceable_states=("Goa",)))
    unseeded = build_denylist(Settings(deny_directory_unserviceable=False, unserviceable_pincodes=("110001",)))

    assert {"799001", "737001"} <= seeded.pincodes
    assert seeded.denies("403001", "Goa")
    assert unseeded.pincodes == frozenset({"110001"})
