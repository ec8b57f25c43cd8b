from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status

from app.booking.ledger import BookingLedger, overlaps
from app.booking.locks import LedgerLocks
from app.booking.models import Booking
from app.booking.orders import (
    CHECK_IN_PROPERTY,
    CHECK_OUT_PROPERTY,
    GUESTS_PROPERTY,
    NIGHTS_PROPERTY,
    iter_order_stays,
)
from app.booking.pricing import count_nights, total_price
from app.shopify.client import ShopifyClient, ShopifyError

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    nights: int
    total_price: Decimal


@dataclass
class CommitResult:
    committed: int = 0
    duplicates: int = 0
    conflicts: int = 0


class BookingService:
    def __init__(
        self,
        shopify: ShopifyClient,
        ledger: BookingLedger,
        locks: LedgerLocks,
    ) -> None:
        self._shopify = shopify
        self._ledger = ledger
        self._locks = locks

    def is_configured(self) -> bool:
        return self._shopify.is_configured()

    @property
    def lock_backend(self) -> str:
        return type(self._locks).__name__

    async def availability(self, product_id: str | None) -> list[Any]:
        if not product_id:
            return []
        return await self._ledger.entries(product_id)

    async def validate(self, *, product_id: str, checkin: Any, checkout: Any) -> None:
        """Проверка свободных дат; не резервирует их."""

        candidate = self._parse_stay(checkin, checkout)
        ledger = await self._ledger.load(product_id)
        if overlaps(candidate, ledger.bookings):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Selected dates are already booked.",
            )

    def calculate_price(
        self, *, base_price: Any, guests: int, checkin: Any, checkout: Any
    ) -> PriceQuote:
        stay = self._parse_stay(checkin, checkout)
        nights = count_nights(stay)
        try:
            total = total_price(base_price, nights=nights, guests=guests)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base price"
            ) from exc
        return PriceQuote(nights=nights, total_price=total)

    async def create_draft_order(
        self,
        *,
        product_id: str,
        checkin: str,
        checkout: str,
        guests: int,
        email: str,
    ) -> str:
        """Создаёт черновик заказа и возвращает ссылку на оплату.

        Цена всегда считается по цене первого варианта товара в каталоге.
        """

        stay = self._parse_stay(checkin, checkout)
        nights = count_nights(stay)

        try:
            product = await self._shopify.get_product(product_id)
            variants = product.get("variants") or []
            if not variants or not isinstance(variants[0], dict):
                raise ShopifyError(f"Product {product_id} has no variants")
            variant = variants[0]
            final_price = total_price(variant.get("price"), nights=nights, guests=guests)

            draft_order = {
                "line_items": [
                    {
                        "variant_id": variant.get("id"),
                        "quantity": 1,
                        "custom_price": float(final_price),
                        "properties": [
                            {"name": CHECK_IN_PROPERTY, "value": checkin},
                            {"name": CHECK_OUT_PROPERTY, "value": checkout},
                            {"name": GUESTS_PROPERTY, "value": guests},
                            {"name": NIGHTS_PROPERTY, "value": nights},
                        ],
                    }
                ],
                "customer": {"email": email},
                "use_customer_default_address": True,
                "send_invoice": True,
                "tax_exempt": True,
            }
            logger.debug("Draft order payload: %s", draft_order)

            created = await self._shopify.create_draft_order(draft_order)
        except (ShopifyError, ValueError) as exc:
            logger.error("Error creating draft order for product %s: %s", product_id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error creating draft order",
            ) from exc

        invoice_url = created.get("invoice_url")
        if not invoice_url:
            logger.error("Draft order %s has no invoice_url", created.get("id"))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error creating draft order",
            )
        logger.info("Draft order %s created for product %s", created.get("id"), product_id)
        return invoice_url

    async def commit_order(self, order: dict[str, Any]) -> CommitResult:
        """Сохраняет проживания подтверждённого заказа в журналы товаров.

        Повторная доставка того же заказа узнаётся по (order_id, line_item_id)
        и пропускается; пересечение с чужой бронью тоже пропускается. Ошибка
        чтения журнала прерывает обработку, чтобы Shopify повторил доставку.
        """

        result = CommitResult()
        for stay in iter_order_stays(order):
            async with self._locks.lock(stay.product_id):
                ledger = await self._ledger.fetch(stay.product_id)
                if ledger.has_source(stay.booking.source_key):
                    logger.info(
                        "Order %s already stored for product %s",
                        stay.booking.order_id,
                        stay.product_id,
                    )
                    result.duplicates += 1
                    continue
                if overlaps(stay.booking, ledger.bookings):
                    logger.warning(
                        "Order %s overlaps an existing booking of product %s, skipped",
                        stay.booking.order_id,
                        stay.product_id,
                    )
                    result.conflicts += 1
                    continue
                await self._ledger.append(stay.product_id, stay.booking, ledger)
                result.committed += 1
        return result

    @staticmethod
    def _parse_stay(checkin: Any, checkout: Any) -> Booking:
        try:
            stay = Booking.from_range(checkin, checkout)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid check-in or check-out date",
            ) from exc
        if stay.end <= stay.start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Check-out must be after check-in",
            )
        return stay


__all__ = ["BookingService", "CommitResult", "PriceQuote"]
