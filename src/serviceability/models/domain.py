"""Domain models for pincode records, resolved addresses and cart lines."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

ResolutionSource = Literal["local", "api", "hybrid"]
Confidence = Literal["high", "medium", "low"]

NOT_AVAILABLE = "Not available"


@dataclass(slots=True, frozen=True)
class PostalRecord:
    """One row of the local pincode directory."""

    code: str
    state: str
    city: str
    district: str
    region: str
    delivery_time: str
    shipping_cost: float
    serviceable: bool


@dataclass(slots=True, frozen=True)
class RemoteRecord(PostalRecord):
    """Normalized answer from a single upstream pincode API."""

    source: str
    fetched_at: datetime


@dataclass(slots=True, frozen=True)
class ResolvedAddress(PostalRecord):
    """Merged result of the local directory and the remote resolver."""

    source: ResolutionSource
    confidence: Confidence
    last_updated: datetime


@dataclass(slots=True)
class CartLine:
    """A checkout line item as seen by the charge calculator."""

    unit_weight_grams: Optional[float]
    quantity: int
    price: float = 0.0
    discount: Optional[float] = None
    discount_price: Optional[float] = None
    original_price: Optional[float] = None


@dataclass(slots=True)
class CartQuote:
    subtotal: float
    total_weight_grams: float
    per_kg_rate: float
    delivery_charge: float
    total: float
