"""Журнал бронирований товара, хранящийся в метаполе Shopify."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from app.booking.models import Booking, Ledger, format_timestamp
from app.shopify.client import ShopifyClient

logger = logging.getLogger(__name__)


class LedgerReadError(RuntimeError):
    """Метаполе журнала содержит не список бронирований."""


def overlaps(candidate: Booking, bookings: Iterable[Booking]) -> bool:
    """Пересекается ли полуоткрытый интервал с одним из бронирований."""

    return any(
        candidate.start < existing.end and existing.start < candidate.end
        for existing in bookings
    )


class BookingLedger:
    def __init__(
        self,
        client: ShopifyClient,
        *,
        namespace: str = "custom",
        key: str = "booking",
    ) -> None:
        self._client = client
        self._namespace = namespace
        self._key = key

    async def fetch(self, product_id: str) -> Ledger:
        """Читает журнал товара для последующей записи.

        Ошибки Shopify и битое содержимое метаполя пробрасываются: запись по
        непрочитанному журналу затёрла бы чужие брони.
        """

        field, entries = await self._read(product_id)
        try:
            bookings = [Booking.from_dict(item) for item in entries]
        except ValueError as exc:
            raise LedgerReadError(f"Malformed booking entry for product {product_id}: {exc}") from exc
        return Ledger(
            product_id=product_id,
            bookings=bookings,
            entries=entries,
            metafield_id=field.get("id") if field else None,
        )

    async def load(self, product_id: str) -> Ledger:
        """Как ``fetch``, но любая ошибка даёт пустой журнал без метаполя."""

        try:
            return await self.fetch(product_id)
        except Exception as exc:
            logger.error("Error fetching bookings for product %s: %s", product_id, exc)
            return Ledger(product_id=product_id)

    async def entries(self, product_id: str) -> list[Any]:
        """Записи журнала в том виде, в каком они хранятся, для календаря."""

        try:
            _field, entries = await self._read(product_id)
        except Exception as exc:
            logger.error("Error fetching bookings for product %s: %s", product_id, exc)
            return []
        return entries

    async def append(self, product_id: str, candidate: Booking, ledger: Ledger) -> Ledger:
        """Записывает журнал целиком вместе с новым бронированием."""

        entries = [*ledger.entries, candidate.to_dict()]
        value = json.dumps(entries)

        if ledger.metafield_id is not None:
            field = await self._client.update_metafield(ledger.metafield_id, value=value)
        else:
            field = await self._client.create_product_metafield(
                product_id,
                namespace=self._namespace,
                key=self._key,
                value=value,
            )

        logger.info(
            "Stored booking %s..%s for product %s (%d total)",
            format_timestamp(candidate.start),
            format_timestamp(candidate.end),
            product_id,
            len(entries),
        )
        return Ledger(
            product_id=product_id,
            bookings=[*ledger.bookings, candidate],
            entries=entries,
            metafield_id=field.get("id", ledger.metafield_id),
        )

    async def _read(self, product_id: str) -> tuple[dict[str, Any] | None, list[Any]]:
        metafields = await self._client.list_product_metafields(product_id)
        field = next(
            (
                item
                for item in metafields
                if item.get("namespace") == self._namespace and item.get("key") == self._key
            ),
            None,
        )
        if field is None:
            return None, []
        return field, self._decode(field.get("value"), product_id)

    @staticmethod
    def _decode(raw: Any, product_id: str) -> list[Any]:
        if raw in (None, ""):
            return []
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
        except ValueError as exc:
            raise LedgerReadError(f"Booking metafield of product {product_id} is not JSON") from exc
        if not isinstance(data, list):
            raise LedgerReadError(f"Booking metafield of product {product_id} is not a list")
        return data


__all__ = ["BookingLedger", "LedgerReadError", "overlaps"]
