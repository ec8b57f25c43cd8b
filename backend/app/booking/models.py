from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any


def parse_timestamp(value: Any) -> datetime:
    """Приводит дату или дату-время к aware-моменту в UTC.

    Дата без времени читается как полночь UTC, время без смещения тоже
    считается UTC. Нераспознанное значение даёт ``ValueError``.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        if len(text) == 10:
            parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
        else:
            parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    # 2024-01-01T00:00:00.000Z, формат уже сохранённых журналов
    moment = value.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class Booking:
    """Забронированный интервал ``[start, end)``."""

    start: datetime
    end: datetime
    order_id: str | None = None
    line_item_id: str | None = None

    @classmethod
    def from_range(cls, start: Any, end: Any) -> Booking:
        return cls(start=parse_timestamp(start), end=parse_timestamp(end))

    @classmethod
    def from_dict(cls, raw: Any) -> Booking:
        if not isinstance(raw, dict):
            raise ValueError(f"booking entry must be an object, got {type(raw).__name__}")
        if "start" not in raw or "end" not in raw:
            raise ValueError("booking entry must have start and end")
        order_id = raw.get("order_id")
        line_item_id = raw.get("line_item_id")
        return cls(
            start=parse_timestamp(raw["start"]),
            end=parse_timestamp(raw["end"]),
            order_id=str(order_id) if order_id is not None else None,
            line_item_id=str(line_item_id) if line_item_id is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "start": format_timestamp(self.start),
            "end": format_timestamp(self.end),
        }
        if self.order_id is not None:
            payload["order_id"] = self.order_id
        if self.line_item_id is not None:
            payload["line_item_id"] = self.line_item_id
        return payload

    @property
    def source_key(self) -> tuple[str, str | None] | None:
        if self.order_id is None:
            return None
        return (self.order_id, self.line_item_id)

    def with_source(self, order_id: Any, line_item_id: Any) -> Booking:
        return replace(
            self,
            order_id=str(order_id) if order_id is not None else None,
            line_item_id=str(line_item_id) if line_item_id is not None else None,
        )


@dataclass
class Ledger:
    product_id: str
    bookings: list[Booking] = field(default_factory=list)
    # записи метаполя как есть, в том же порядке, что и bookings
    entries: list[Any] = field(default_factory=list)
    metafield_id: int | str | None = None

    def has_source(self, key: tuple[str, str | None] | None) -> bool:
        if key is None:
            return False
        return any(booking.source_key == key for booking in self.bookings)


__all__ = ["Booking", "Ledger", "format_timestamp", "parse_timestamp"]
