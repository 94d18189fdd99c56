"""Delivery charge quotes for checkout."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...data import directory
from ...schemas.charges import ChargeQuoteRequest, ChargeQuoteResponse
from ...services.charges import quote_cart, select_per_kg_rate
from ...services.hybrid import get_hybrid_resolver

router = APIRouter(prefix="/charges", tags=["charges"])


@router.post("/quote", response_model=ChargeQuoteResponse, status_code=status.HTTP_200_OK)
async def quote_delivery_charge(payload: ChargeQuoteRequest) -> ChargeQuoteResponse:
    """Price a cart, optionally using the delivery pincode's shipping cost as the per-kg rate."""
    if payload.use_resolved_rate and not payload.pincode:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="pincode is required when use_resolved_rate is set",
        )
    if payload.pincode is not None and not directory.validate(payload.pincode):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid pincode '{payload.pincode}'",
        )

    rate = payload.per_kg_rate or settings.default_per_kg_rate
    serviceable = None
    try:
        if payload.pincode:
            resolved = await get_hybrid_resolver().resolve(payload.pincode)
            serviceable = resolved.serviceable if resolved else None
            if payload.use_resolved_rate:
                rate = select_per_kg_rate(resolved, rate)
        quote = quote_cart([line.to_domain() for line in payload.lines], rate)
    except Exception as exc:
        logging.exception(f"Error quoting delivery charge: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to quote delivery charge: {str(exc)}",
        ) from exc
    return ChargeQuoteResponse.from_quote(quote, pincode=payload.pincode, serviceable=serviceable)
