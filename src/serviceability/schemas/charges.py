"""Pydantic request/response models for delivery charge quotes."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import CartLine, CartQuote


class CartLineModel(BaseModel):
    unit_weight_grams: Optional[float] = Field(default=None, ge=0, description="Weight of one unit in grams.")
    quantity: int = Field(default=1, ge=0)
    price: float = Field(default=0.0, ge=0)
    discount: Optional[float] = Field(default=None, ge=0, le=100, description="Percentage discount off original_price.")
    discount_price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)

    def to_domain(self) -> CartLine:
        return CartLine(
            unit_weight_grams=self.unit_weight_grams,
            quantity=self.quantity,
            price=self.price,
            discount=self.discount,
            discount_price=self.discount_price,
            original_price=self.original_price,
        )


class ChargeQuoteRequest(BaseModel):
    lines: List[CartLineModel] = Field(default_factory=list)
    pincode: Optional[str] = Field(default=None, description="Delivery pincode; required when use_resolved_rate is set.")
    use_resolved_rate: bool = Field(
        default=False,
        description="Use the resolved shipping cost as the per-kg rate instead of the flat default.",
    )
    per_kg_rate: Optional[float] = Field(default=None, gt=0, description="Explicit per-kg rate override.")


class ChargeQuoteResponse(BaseModel):
    subtotal: float
    total_weight_grams: float
    per_kg_rate: float
    delivery_charge: float
    total: float
    pincode: Optional[str] = None
    serviceable: Optional[bool] = None

    @classmethod
    def from_quote(cls, quote: CartQuote, **extra) -> "ChargeQuoteResponse":
        return cls(
            subtotal=quote.subtotal,
            total_weight_grams=quote.total_weight_grams,
            per_kg_rate=quote.per_kg_rate,
            delivery_charge=quote.delivery_charge,
            total=quote.total,
            **extra,
        )
