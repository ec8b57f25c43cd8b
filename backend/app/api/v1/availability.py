from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.v1.bookings import get_booking_service
from app.booking.service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter()


class AvailabilityResponse(BaseModel):
    bookings: list[dict[str, Any]]


@router.get("/availability", response_model=AvailabilityResponse)
async def availability(
    product_id: str | None = Query(None, description="ID товара в Shopify"),
    service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    # Календарь на витрине не должен падать из-за ошибок Shopify
    try:
        bookings = await service.availability(product_id)
    except Exception as exc:
        logger.error("Availability lookup for product %s failed: %s", product_id, exc)
        bookings = []
    return AvailabilityResponse(bookings=bookings)


__all__ = ["router"]
