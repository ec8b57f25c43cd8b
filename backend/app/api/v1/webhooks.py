from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse

from app.api.v1.bookings import get_booking_service
from app.booking.ledger import LedgerReadError
from app.booking.locks import LedgerLockError
from app.booking.service import BookingService
from app.shopify.client import ShopifyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks")


@router.post("/orders-create", response_class=PlainTextResponse)
async def orders_create(
    request: Request,
    service: BookingService = Depends(get_booking_service),
) -> PlainTextResponse:
    """Shopify webhook orders/create: сохраняет подтверждённые брони."""

    try:
        order = await request.json()
    except ValueError:
        return PlainTextResponse("Invalid JSON", status_code=status.HTTP_400_BAD_REQUEST)

    if not isinstance(order, dict) or not isinstance(order.get("line_items"), list):
        return PlainTextResponse("No line_items found", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        result = await service.commit_order(order)
    except (ShopifyError, LedgerReadError, LedgerLockError) as exc:
        logger.error("Failed to store bookings for order %s: %s", order.get("id"), exc)
        return PlainTextResponse("ERROR", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(
        "Order %s processed: committed=%d duplicates=%d conflicts=%d",
        order.get("id"),
        result.committed,
        result.duplicates,
        result.conflicts,
    )
    return PlainTextResponse("OK")


__all__ = ["router"]
