import pytest
from fastapi.testclient import TestClient

from src.serviceability.main import create_app
from src.serviceability.services.hybrid import HybridResolver
from src.serviceability.services.resolver import RemoteResolver, ServiceDenylist

from tests.upstream import POSTAL_HOST, datagov_config, postal_config, postal_only, postal_payload


@pytest.fixture
def upstream():
    return postal_only(postal_payload(state="Karnataka", name="Bangalore GPO", district="Bangalore"))


@pytest.fixture
def resolver(upstream) -> HybridResolver:
    remote = RemoteResolver(
        sources=[datagov_config(api_key=None), postal_config()],
        client=upstream.client(),
        denylist=ServiceDenylist.build(["799001", "737001"]),
    )
    return HybridResolver(remote=remote, batch_pause_seconds=0)


@pytest.fixture
def api_client(resolver: HybridResolver, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from src.serviceability.api.routes import charges, health, pincodes, sources

    for module in (charges, health, pincodes, sources):
        monkeypatch.setattr(module, "get_hybrid_resolver", lambda: resolver)

    return TestClient(create_app())


def test_root_and_health(api_client: TestClient):
    assert api_client.get("/").json()["status"] == "running"
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_health_sources_checks_enabled_sources(api_client: TestClient):
    payload = api_client.get("/api/health/sources").json()

    assert payload["healthy"] is True
    assert {entry["name"]: entry["healthy"] for entry in payload["sources"]} == {
        "data.gov.in": False,
        "postalpincode.in": True,
    }


def test_health_sources_counts_against_rate_limit(api_client: TestClient, resolver: HybridResolver, upstream):
    resolver.remote.update_source("postalpincode.in", rate_limit_per_minute=1)

    responses = [api_client.get("/api/health/sources").json() for _ in range(3)]

    assert upstream.hits(POSTAL_HOST) == 1
    assert responses[0]["healthy"] is True
    postal = next(entry for entry in responses[-1]["sources"] if entry["name"] == "postalpincode.in")
    assert postal["healthy"] is False
    assert postal["reason"] == "rate_limited"
    assert responses[-1]["healthy"] is False


def test_get_pincode_merges_local_and_remote(api_client: TestClient):
    response = api_client.get("/api/pincodes/560001")

    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "hybrid"
    assert payload["confidence"] == "high"
    assert payload["city"] == "Bangalore GPO"
    assert payload["source_description"] == "Local + API (Merged)"
    assert payload["confidence_description"].startswith("High accuracy")


def test_malformed_pincode_is_rejected(api_client: TestClient, upstream):
    response = api_client.get("/api/pincodes/012345")

    assert response.status_code == 400
    assert upstream.requests == []


def test_unresolvable_pincode_is_not_found(api_client: TestClient, resolver: HybridResolver):
    resolver.remote.update_source("postalpincode.in", enabled=False)

    response = api_client.get("/api/pincodes/999999")

    assert response.status_code == 404
    assert "Could not determine" in response.json()["detail"]


def test_serviceability_endpoint_shares_one_upstream_call(api_client: TestClient, upstream):
    response = api_client.get("/api/pincodes/560001/serviceability")

    assert response.status_code == 200
    assert response.json() == {
        "code": "560001",
        "serviceable": True,
        "shipping_cost": 70.0,
        "delivery_time": "2-3 days",
    }
    assert upstream.hits(POSTAL_HOST) == 1


def test_serviceability_endpoint_resolves_once(
    api_client: TestClient, resolver: HybridResolver, monkeypatch: pytest.MonkeyPatch
):
    calls = []
    original = resolver.resolve

    async def counting_resolve(code: str):
        calls.append(code)
        return await original(code)

    monkeypatch.setattr(resolver, "resolve", counting_resolve)

    response = api_client.get("/api/pincodes/560001/serviceability")

    assert response.status_code == 200
    assert calls == ["560001"]


def test_serviceability_of_unresolvable_pincode_uses_defaults(api_client: TestClient, resolver: HybridResolver):
    resolver.remote.update_source("postalpincode.in", enabled=False)

    response = api_client.get("/api/pincodes/999999/serviceability")

    assert response.status_code == 200
    assert response.json() == {
        "code": "999999",
        "serviceable": False,
        "shipping_cost": 0,
        "delivery_time": "Not available",
    }


def test_unserviceable_pincode(api_client: TestClient):
    payload = api_client.get("/api/pincodes/799001/serviceability").json()

    assert payload["serviceable"] is False
    assert payload["shipping_cost"] == 0
    assert payload["delivery_time"] == "Not available"


def test_popular_and_search(api_client: TestClient):
    popular = api_client.get("/api/pincodes/popular").json()
    found = api_client.get("/api/pincodes/search", params={"q": "chennai"}).json()

    assert popular[0]["code"] == "110001"
    assert len(popular) == 9
    assert [entry["code"] for entry in found] == ["600001", "600020", "600032"]


def test_batch_and_stats(api_client: TestClient, resolver: HybridResolver):
    resolver.remote.update_source("postalpincode.in", enabled=False)

    batch = api_client.post("/api/pincodes/batch", json={"codes": ["110001", "999999", "400001"]}).json()
    stats = api_client.post("/api/pincodes/stats", json={"codes": ["110001", "799001"]}).json()

    assert batch["requested"] == 3
    assert batch["resolved"] == 2
    assert [entry["code"] for entry in batch["items"]] == ["110001", "400001"]
    assert stats["total"] == 2
    assert stats["local"] == 2
    assert stats["serviceable"] == 1
    assert stats["average_confidence"] == 1.0


def test_charge_quote_with_flat_rate(api_client: TestClient):
    response = api_client.post(
        "/api/charges/quote",
        json={"lines": [{"unit_weight_grams": 750, "quantity": 2, "price": 300}]},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["delivery_charge"] == 135.0
    assert payload["subtotal"] == 600.0
    assert payload["total"] == 735.0
    assert payload["serviceable"] is None


def test_charge_quote_with_resolved_rate(api_client: TestClient):
    response = api_client.post(
        "/api/charges/quote",
        json={
            "lines": [{"unit_weight_grams": 2000, "quantity": 1, "price": 800}],
            "pincode": "560001",
            "use_resolved_rate": True,
        },
    )

    payload = response.json()
    assert payload["per_kg_rate"] == 70.0
    assert payload["delivery_charge"] == 140.0
    assert payload["serviceable"] is True


def test_charge_quote_validation(api_client: TestClient):
    missing_pincode = api_client.post("/api/charges/quote", json={"lines": [], "use_resolved_rate": True})
    bad_pincode = api_client.post("/api/charges/quote", json={"lines": [], "pincode": "12"})
    negative_weight = api_client.post("/api/charges/quote", json={"lines": [{"unit_weight_grams": -5}]})

    assert missing_pincode.status_code == 400
    assert bad_pincode.status_code == 400
    assert negative_weight.status_code == 422


def test_source_admin_endpoints(api_client: TestClient, upstream):
    listed = api_client.get("/api/sources").json()
    assert [entry["name"] for entry in listed] == ["data.gov.in", "postalpincode.in"]
    assert listed[0]["configured"] is False

    trace = api_client.get("/api/sources/trace/110001").json()
    assert trace["resolved"] is True
    assert [attempt["reason"] for attempt in trace["attempts"]] == ["missing_credentials", None]

    assert api_client.get("/api/sources/cache").json() == {"size": 1, "entries": ["110001"]}
    assert api_client.get("/api/sources/trace/110001").json()["cached"] is True

    cleared = api_client.delete("/api/sources/cache").json()
    assert cleared["entries_removed"] == 1
    assert api_client.get("/api/sources/cache").json()["size"] == 0

    updated = api_client.patch("/api/sources/postalpincode.in", json={"rate_limit_per_minute": 5, "priority": 3})
    assert updated.status_code == 200
    assert updated.json()["rate_limit_per_minute"] == 5

    assert api_client.patch("/api/sources/pincodeapi.com", json={"enabled": False}).status_code == 404
    assert api_client.get("/api/sources/trace/0123").status_code == 400
    assert upstream.hits(POSTAL_HOST) == 1


def test_invalid_source_update_is_a_bad_request(api_client: TestClient, resolver: HybridResolver):
    response = api_client.patch("/api/sources/postalpincode.in", json={"base_url": None})

    assert response.status_code == 400
    assert resolver.remote.get_source_config("postalpincode.in").base_url
