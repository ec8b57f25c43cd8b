from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from app.booking.models import Booking

logger = logging.getLogger(__name__)

CHECK_IN_PROPERTY = "Check In"
CHECK_OUT_PROPERTY = "Check Out"
GUESTS_PROPERTY = "Guests"
NIGHTS_PROPERTY = "Nights"


@dataclass
class OrderStay:
    product_id: str
    booking: Booking


def line_item_property(item: dict[str, Any], name: str) -> Any:
    properties = item.get("properties")
    if not isinstance(properties, list):
        return None
    for prop in properties:
        if isinstance(prop, dict) and prop.get("name") == name:
            return prop.get("value")
    return None


def iter_order_stays(order: dict[str, Any]) -> Iterator[OrderStay]:
    """Проживания из позиций заказа; неполные позиции пропускаются."""

    order_id = order.get("id")
    for item in order.get("line_items") or []:
        if not isinstance(item, dict):
            continue
        check_in = line_item_property(item, CHECK_IN_PROPERTY)
        check_out = line_item_property(item, CHECK_OUT_PROPERTY)
        product_id = item.get("product_id")
        if not check_in or not check_out or not product_id:
            logger.info("Skipping line item %s: no stay dates or product", item.get("id"))
            continue

        try:
            booking = Booking.from_range(check_in, check_out)
        except ValueError as exc:
            logger.warning("Skipping line item %s: %s", item.get("id"), exc)
            continue

        yield OrderStay(
            product_id=str(product_id),
            booking=booking.with_source(order_id, item.get("id")),
        )


__all__ = [
    "CHECK_IN_PROPERTY",
    "CHECK_OUT_PROPERTY",
    "GUESTS_PROPERTY",
    "NIGHTS_PROPERTY",
    "OrderStay",
    "iter_order_stays",
    "line_item_property",
]
