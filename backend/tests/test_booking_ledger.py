import asyncio
from datetime import datetime, timezone

import pytest

from _helpers import FakeShopify

from app.booking.ledger import BookingLedger, LedgerReadError, overlaps
from app.booking.models import Booking
from app.shopify.client import ShopifyRequestError


def _booking(start: str, end: str) -> Booking:
    return Booking.from_range(start, end)


@pytest.mark.parametrize(
    "candidate,existing,expected",
    [
        (("2024-01-05", "2024-01-08"), ("2024-01-01", "2024-01-05"), False),
        (("2024-01-04", "2024-01-06"), ("2024-01-01", "2024-01-05"), True),
        (("2024-01-02", "2024-01-03"), ("2024-01-01", "2024-01-05"), True),
        (("2023-12-30", "2024-01-10"), ("2024-01-01", "2024-01-05"), True),
        (("2023-12-28", "2024-01-01"), ("2024-01-01", "2024-01-05"), False),
        (("2024-01-01", "2024-01-05"), ("2024-01-01", "2024-01-05"), True),
    ],
)
def test_overlaps_half_open_and_symmetric(candidate, existing, expected):
    a = _booking(*candidate)
    b = _booking(*existing)

    assert overlaps(a, [b]) is expected
    assert overlaps(b, [a]) is expected


def test_overlaps_empty_ledger_is_false():
    assert overlaps(_booking("2024-01-01", "2024-01-05"), []) is False


def test_overlaps_compares_instants_across_offsets():
    stored = _booking("2024-01-01T00:00:00.000Z", "2024-01-05T00:00:00.000Z")
    # 2024-01-05T01:00+02:00 == 2024-01-04T23:00Z
    candidate = _booking("2024-01-05T01:00:00+02:00", "2024-01-07T00:00:00+02:00")

    assert overlaps(candidate, [stored]) is True


def test_load_without_metafield_returns_empty_ledger():
    fake = FakeShopify()
    fake.seed_metafield("1", {"unrelated": True}, namespace="custom", key="other")
    ledger_store = BookingLedger(fake.client())

    ledger = asyncio.run(ledger_store.load("1"))

    assert ledger.bookings == []
    assert ledger.metafield_id is None


def test_load_decodes_stored_bookings():
    fake = FakeShopify()
    metafield = fake.seed_metafield(
        "1",
        [
            {"start": "2024-01-01T00:00:00.000Z", "end": "2024-01-05T00:00:00.000Z"},
            {
                "start": "2024-02-01T00:00:00.000Z",
                "end": "2024-02-03T00:00:00.000Z",
                "order_id": "77",
                "line_item_id": "771",
            },
        ],
    )
    ledger_store = BookingLedger(fake.client())

    ledger = asyncio.run(ledger_store.load("1"))

    assert ledger.metafield_id == metafield["id"]
    assert ledger.bookings[0].start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert ledger.bookings[1].source_key == ("77", "771")


@pytest.mark.parametrize("raw", ["not json", '{"start": "2024-01-01"}', '[{"start": "x"}]'])
def test_load_malformed_value_fails_soft(raw):
    fake = FakeShopify()
    fake.seed_metafield("1", raw)
    ledger_store = BookingLedger(fake.client())

    ledger = asyncio.run(ledger_store.load("1"))

    assert ledger.bookings == []
    assert ledger.metafield_id is None


def test_load_remote_error_fails_soft():
    fake = FakeShopify()
    fake.fail_status = 502
    ledger_store = BookingLedger(fake.client())

    ledger = asyncio.run(ledger_store.load("1"))

    assert ledger.bookings == []


def test_append_creates_then_updates_metafield():
    fake = FakeShopify()
    ledger_store = BookingLedger(fake.client())

    async def scenario():
        ledger = await ledger_store.load("5")
        await ledger_store.append("5", _booking("2024-01-01", "2024-01-05"), ledger)
        ledger = await ledger_store.load("5")
        await ledger_store.append("5", _booking("2024-01-05", "2024-01-08"), ledger)

    asyncio.run(scenario())

    writes = fake.writes()
    assert [method for method, _ in writes] == ["POST", "PUT"]
    assert writes[0][1].endswith("/products/5/metafields.json")
    assert len(fake.metafields["5"]) == 1
    assert fake.stored_bookings("5") == [
        {"start": "2024-01-01T00:00:00.000Z", "end": "2024-01-05T00:00:00.000Z"},
        {"start": "2024-01-05T00:00:00.000Z", "end": "2024-01-08T00:00:00.000Z"},
    ]


def test_append_uses_configured_namespace_and_key():
    fake = FakeShopify()
    ledger_store = BookingLedger(fake.client(), namespace="stays", key="calendar")

    async def scenario():
        ledger = await ledger_store.load("5")
        return await ledger_store.append("5", _booking("2024-01-01", "2024-01-02"), ledger)

    ledger = asyncio.run(scenario())

    stored = fake.metafields["5"][0]
    assert (stored["namespace"], stored["key"]) == ("stays", "calendar")
    assert ledger.metafield_id == stored["id"]
    assert len(ledger.bookings) == 1


def test_fetch_raises_on_remote_error():
    fake = FakeShopify()
    fake.failing_reads = 1
    ledger_store = BookingLedger(fake.client())

    with pytest.raises(ShopifyRequestError):
        asyncio.run(ledger_store.fetch("1"))


@pytest.mark.parametrize("raw", ["not json", '{"start": "2024-01-01"}', '[{"start": "x"}]'])
def test_fetch_raises_on_malformed_value(raw):
    fake = FakeShopify()
    fake.seed_metafield("1", raw)
    ledger_store = BookingLedger(fake.client())

    with pytest.raises(LedgerReadError):
        asyncio.run(ledger_store.fetch("1"))


def test_entries_are_returned_as_stored():
    fake = FakeShopify()
    stored = [
        {"start": "2024-01-01", "end": "2024-01-05", "note": "owner stay"},
        {"start": "someday", "end": "2024-02-01"},
    ]
    fake.seed_metafield("1", stored)
    ledger_store = BookingLedger(fake.client())

    assert asyncio.run(ledger_store.entries("1")) == stored


def test_entries_fail_soft():
    fake = FakeShopify()
    fake.fail_status = 500
    ledger_store = BookingLedger(fake.client())

    assert asyncio.run(ledger_store.entries("1")) == []
