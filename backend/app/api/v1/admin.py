from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.v1.bookings import get_booking_service
from app.booking.service import BookingService

router = APIRouter(prefix="/admin")


class HealthResponse(BaseModel):
    ok: bool
    shopify_configured: bool
    ledger_locks: str


@router.get("/health", response_model=HealthResponse)
async def health(service: BookingService = Depends(get_booking_service)) -> HealthResponse:
    return HealthResponse(
        ok=True,
        shopify_configured=service.is_configured(),
        ledger_locks=service.lock_backend,
    )


__all__ = ["router"]
