from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.booking.service import BookingService

router = APIRouter()


def get_booking_service() -> BookingService:  # pragma: no cover - переопределяется в main
    raise RuntimeError("Booking service dependency is not configured")


class StayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    checkin: str = Field(min_length=1)
    checkout: str = Field(min_length=1)


class ValidateBookingRequest(StayRequest):
    product_id: str = Field(alias="productId", min_length=1)


class ValidateBookingResponse(BaseModel):
    available: bool


class CalculatePriceRequest(StayRequest):
    base_price: float = Field(alias="basePrice", ge=0)
    guests: int = Field(gt=0)


class CalculatePriceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nights: int
    total_price: float = Field(serialization_alias="totalPrice")


class DraftOrderRequest(StayRequest):
    product_id: str = Field(alias="productId", min_length=1)
    guests: int = Field(gt=0)
    email: str = Field(min_length=1)


class DraftOrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_url: str = Field(serialization_alias="invoiceUrl")


@router.post("/validate-booking", response_model=ValidateBookingResponse)
async def validate_booking(
    payload: ValidateBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> ValidateBookingResponse:
    await service.validate(
        product_id=payload.product_id, checkin=payload.checkin, checkout=payload.checkout
    )
    return ValidateBookingResponse(available=True)


@router.post("/calculate-price", response_model=CalculatePriceResponse)
async def calculate_price(
    payload: CalculatePriceRequest,
    service: BookingService = Depends(get_booking_service),
) -> CalculatePriceResponse:
    quote = service.calculate_price(
        base_price=payload.base_price,
        guests=payload.guests,
        checkin=payload.checkin,
        checkout=payload.checkout,
    )
    return CalculatePriceResponse(nights=quote.nights, total_price=float(quote.total_price))


@router.post("/create-draft-order", response_model=DraftOrderResponse)
async def create_draft_order(
    payload: DraftOrderRequest,
    service: BookingService = Depends(get_booking_service),
) -> DraftOrderResponse:
    # totalPrice от клиента игнорируется, цена считается по каталогу
    invoice_url = await service.create_draft_order(
        product_id=payload.product_id,
        checkin=payload.checkin,
        checkout=payload.checkout,
        guests=payload.guests,
        email=payload.email,
    )
    return DraftOrderResponse(invoice_url=invoice_url)


__all__ = ["router", "get_booking_service"]
