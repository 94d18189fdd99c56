"""Upstream pincode APIs and the normalization of their payloads."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

import httpx

from ...config import SourceConfig, settings
from ...models.domain import NOT_AVAILABLE, RemoteRecord
from .derivation import (
    ServiceDenylist,
    derive_delivery_time,
    derive_region,
    derive_serviceable,
    derive_shipping_cost,
)
from .models import SourceAttempt, SourceFailureReason

logger = logging.getLogger(__name__)

# data.gov.in datasets are not consistent about field names or casing.
DATAGOV_STATE_KEYS = ("state", "State", "statename", "StateName")
DATAGOV_CITY_KEYS = ("city", "City", "district", "District", "districtname", "taluk", "Taluk")
DATAGOV_DISTRICT_KEYS = ("district", "District", "districtname", "taluk", "Taluk")


@dataclass(slots=True)
class Location:
    state: str
    city: str
    district: str


def _first_value(record: Mapping[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def build_remote_record(
    code: str,
    location: Location,
    source: str,
    denylist: ServiceDenylist | None = None,
) -> RemoteRecord:
    region = derive_region(location.state)
    serviceable = derive_serviceable(code, location.state, denylist)
    return RemoteRecord(
        code=code,
        state=location.state,
        city=location.city,
        district=location.district,
        region=region,
        delivery_time=derive_delivery_time(region) if serviceable else NOT_AVAILABLE,
        shipping_cost=derive_shipping_cost(location.state) if serviceable else 0,
        serviceable=serviceable,
        source=source,
        fetched_at=datetime.now(timezone.utc),
    )


class PincodeSource(ABC):
    """Contract for one upstream pincode API."""

    def __init__(self, config: SourceConfig, user_agent: str | None = None) -> None:
        self.config = config
        self.user_agent = user_agent or settings.user_agent

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    def build_request(self, code: str) -> tuple[str, dict]:
        """Return the URL and query parameters for ``code``."""
        raise NotImplementedError

    @abstractmethod
    def extract(self, payload: Any) -> Optional[Location]:
        """Pull state/city/district out of the payload, or None when it has no match."""
        raise NotImplementedError

    async def _get(self, client: httpx.AsyncClient | None, url: str, params: dict) -> httpx.Response:
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        if client is not None:
            return await client.get(url, params=params, headers=headers, timeout=self.config.timeout_seconds)
        async with httpx.AsyncClient() as owned_client:
            return await owned_client.get(url, params=params, headers=headers, timeout=self.config.timeout_seconds)

    async def lookup(
        self,
        code: str,
        client: httpx.AsyncClient | None = None,
        denylist: ServiceDenylist | None = None,
    ) -> SourceAttempt:
        """Query the source once. Never raises; failures come back as a typed attempt."""
        url, params = self.build_request(code)
        try:
            response = await self._get(client, url, params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            return SourceAttempt.failed(self.name, SourceFailureReason.TIMEOUT, f"timed out after {self.config.timeout_ms}ms: {exc}")
        except httpx.HTTPStatusError as exc:
            return SourceAttempt.failed(self.name, SourceFailureReason.HTTP_ERROR, f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            return SourceAttempt.failed(self.name, SourceFailureReason.NETWORK_ERROR, str(exc) or type(exc).__name__)
        except ValueError as exc:
            return SourceAttempt.failed(self.name, SourceFailureReason.BAD_PAYLOAD, f"invalid JSON: {exc}")

        try:
            location = self.extract(payload)
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            return SourceAttempt.failed(self.name, SourceFailureReason.BAD_PAYLOAD, f"unexpected payload shape: {exc}")

        if location is None or not location.state:
            return SourceAttempt.failed(self.name, SourceFailureReason.EMPTY_PAYLOAD, f"no state for {code}")

        return SourceAttempt(source=self.name, record=build_remote_record(code, location, self.name, denylist))


class DataGovSource(PincodeSource):
    """data.gov.in open-data directory (records array with a filter echo)."""

    def build_request(self, code: str) -> tuple[str, dict]:
        url = f"{self.config.base_url.rstrip('/')}/{self.config.resource_id}"
        params = {
            "api-key": self.config.api_key,
            "format": "json",
            "filters[pincode]": code,
            "limit": 1,
        }
        return url, params

    def extract(self, payload: Any) -> Optional[Location]:
        if not isinstance(payload, dict):
            raise TypeError(f"expected an object, got {type(payload).__name__}")
        records = payload.get("records") or []
        if not records:
            return None
        record = records[0]
        state = _first_value(record, DATAGOV_STATE_KEYS)
        city = _first_value(record, DATAGOV_CITY_KEYS)
        district = _first_value(record, DATAGOV_DISTRICT_KEYS) or city
        return Location(state=state, city=city, district=district)


class PostalPincodeSource(PincodeSource):
    """postalpincode.in lookup (array of post office objects)."""

    def build_request(self, code: str) -> tuple[str, dict]:
        return f"{self.config.base_url.rstrip('/')}/{code}", {}

    def extract(self, payload: Any) -> Optional[Location]:
        if not isinstance(payload, list):
            raise TypeError(f"expected an array, got {type(payload).__name__}")
        if not payload or not payload[0].get("PostOffice"):
            return None
        post_office = payload[0]["PostOffice"][0]
        state = str(post_office.get("State") or "").strip()
        city = str(post_office.get("Name") or post_office.get("District") or "").strip()
        district = str(post_office.get("District") or "").strip() or city
        return Location(state=state, city=city, district=district)


def get_source(config: SourceConfig, user_agent: str | None = None) -> PincodeSource:
    match config.kind:
        case "datagov":
            return DataGovSource(config, user_agent)
        case "postalpincode":
            return PostalPincodeSource(config, user_agent)
        case _:
            raise ValueError(f"Unknown pincode source kind '{config.kind}'.")


async def check_source_health(
    config: SourceConfig,
    client: httpx.AsyncClient | None = None,
    pincode: str | None = None,
) -> bool:
    """Check a source by looking up a known pincode.

    Public pincode APIs have no health endpoint, so a real lookup is the test.
    """
    if not config.enabled or config.missing_credentials():
        return False
    attempt = await get_source(config).lookup(pincode or settings.health_check_pincode, client)
    if not attempt.ok:
        logger.info(f"Health check for {config.name} failed: {attempt.reason} {attempt.detail}")
    return attempt.ok
