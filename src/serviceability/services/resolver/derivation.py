"""Region, cost, delivery-time and serviceability rules for remote lookups.

Upstream pincode APIs only report where a pincode is (state, city, district).
Everything the storefront needs to quote a delivery is inferred from the state
name using the tables below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

DEFAULT_REGION = "Central"

# Checked in order; the first group containing a matching fragment wins.
REGION_STATE_FRAGMENTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "North",
        (
            "delhi",
            "haryana",
            "punjab",
            "rajasthan",
            "uttar pradesh",
            "uttarakhand",
            "himachal pradesh",
            "jammu",
            "kashmir",
            "chandigarh",
        ),
    ),
    ("West", ("maharashtra", "gujarat", "goa", "dadra", "nagar haveli", "daman", "diu")),
    (
        "South",
        (
            "karnataka",
            "tamil nadu",
            "kerala",
            "andhra pradesh",
            "telangana",
            "puducherry",
            "lakshadweep",
            "andaman",
            "nicobar",
        ),
    ),
    ("East", ("west bengal", "bihar", "odisha", "jharkhand", "chhattisgarh", "sikkim")),
    (
        "Northeast",
        ("assam", "manipur", "meghalaya", "mizoram", "nagaland", "tripura", "arunachal pradesh"),
    ),
)

REGION_SHIPPING_COST: dict[str, float] = {
    "North": 50,
    "West": 60,
    "South": 70,
    "East": 80,
    "Northeast": 150,
    "Central": 100,
}

# State-specific prices take precedence over the region default.
STATE_SHIPPING_OVERRIDES: tuple[tuple[str, float], ...] = (
    ("andhra pradesh", 80),
    ("telangana", 90),
)

REGION_DELIVERY_TIME: dict[str, str] = {
    "North": "1-2 days",
    "West": "2-3 days",
    "South": "2-3 days",
    "East": "3-4 days",
    "Northeast": "5-7 days",
    "Central": "3-5 days",
}


@dataclass(slots=True, frozen=True)
class ServiceDenylist:
    """Explicit set of pincodes and states the storefront does not deliver to."""

    pincodes: frozenset[str] = field(default_factory=frozenset)
    states: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def build(cls, pincodes: Iterable[str] = (), states: Iterable[str] = ()) -> "ServiceDenylist":
        return cls(
            pincodes=frozenset(code.strip() for code in pincodes if code and code.strip()),
            states=frozenset(state.strip().lower() for state in states if state and state.strip()),
        )

    def denies(self, code: str, state: str) -> bool:
        if code in self.pincodes:
            return True
        return (state or "").strip().lower() in self.states


def derive_region(state: str) -> str:
    state_lower = (state or "").lower()
    for region, fragments in REGION_STATE_FRAGMENTS:
        if any(fragment in state_lower for fragment in fragments):
            return region
    return DEFAULT_REGION


def derive_shipping_cost(state: str) -> float:
    state_lower = (state or "").lower()
    for fragment, cost in STATE_SHIPPING_OVERRIDES:
        if fragment in state_lower:
            return cost
    return REGION_SHIPPING_COST.get(derive_region(state), REGION_SHIPPING_COST[DEFAULT_REGION])


def derive_delivery_time(region: str) -> str:
    return REGION_DELIVERY_TIME.get(region, REGION_DELIVERY_TIME[DEFAULT_REGION])


def derive_serviceable(code: str, state: str, denylist: ServiceDenylist | None = None) -> bool:
    # No region is excluded by default; only the explicit denylist can say no.
    if denylist is None:
        return True
    return not denylist.denies(code, state)
