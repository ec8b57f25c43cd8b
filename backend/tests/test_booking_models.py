from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from _helpers import make_order

from app.booking.models import Booking, format_timestamp, parse_timestamp
from app.booking.orders import iter_order_stays
from app.booking.pricing import count_nights, total_price


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-01-01", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-01-01T00:00:00.000Z", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-01-01T12:30:00", datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)),
        ("2024-01-01T03:00:00+03:00", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        (date(2024, 1, 1), datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_normalizes_to_utc(raw, expected):
    parsed = parse_timestamp(raw)

    assert parsed == expected
    assert parsed.utcoffset().total_seconds() == 0


@pytest.mark.parametrize("raw", ["", "tomorrow", "2024-13-01", None, 20240101])
def test_parse_timestamp_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_timestamp(raw)


def test_format_timestamp_matches_stored_format():
    moment = datetime(2024, 1, 1, 10, 5, 7, 123456, tzinfo=timezone.utc)

    assert format_timestamp(moment) == "2024-01-01T10:05:07.123Z"


def test_booking_to_dict_omits_missing_source():
    booking = Booking.from_range("2024-01-01", "2024-01-03")

    assert booking.to_dict() == {
        "start": "2024-01-01T00:00:00.000Z",
        "end": "2024-01-03T00:00:00.000Z",
    }
    assert booking.source_key is None
    assert booking.with_source(5, 51).to_dict()["order_id"] == "5"


def test_count_nights():
    assert count_nights(Booking.from_range("2024-01-01", "2024-01-04")) == 3
    assert count_nights(Booking.from_range("2024-01-01T15:00:00", "2024-01-02T11:00:00")) == 1
    assert count_nights(Booking.from_range("2024-01-01T00:00:00", "2024-01-02T12:00:00")) == 2


def test_total_price_rounds_to_cents():
    assert total_price(100, nights=3, guests=2) == Decimal("600.00")
    assert total_price("19.995", nights=1, guests=1) == Decimal("20.00")
    with pytest.raises(ValueError):
        total_price("free", nights=1, guests=1)


def test_iter_order_stays_skips_incomplete_items():
    order = make_order(
        9,
        ("100", None, "2024-01-05"),
        ("100", "2024-01-01", "2024-01-03"),
        (None, "2024-01-01", "2024-01-03"),
        ("200", "not a date", "2024-01-03"),
    )

    stays = list(iter_order_stays(order))

    assert len(stays) == 1
    assert stays[0].product_id == "100"
    assert stays[0].booking.source_key == ("9", "92")
