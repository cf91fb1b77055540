from datetime import date

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from rentals.db import crud_apartments
from rentals.db.models import Apartment
from rentals.schemas.apartment import Amenity, SearchFilters
from rentals.services.availability import SearchResult, filter_by_amenities, get_available_apartments

MARCH_1 = date(2025, 3, 1)
MARCH_5 = date(2025, 3, 5)


def march(**kwargs) -> SearchFilters:
    return SearchFilters(check_in=MARCH_1, check_out=MARCH_5, **kwargs)


def titles(result) -> list:
    return [a.title for a in result.apartments]


async def test_capacity_excludes_small_apartments(db, make_apartment):
    await make_apartment(title="Studio", max_guests=2)
    await make_apartment(title="House", max_guests=6)

    result = await get_available_apartments(db, SearchFilters(guests=4))

    assert titles(result) == ["House"]
    assert not result.degraded


async def test_inactive_apartments_are_hidden(db, make_apartment):
    await make_apartment(title="Hidden", is_active=False)
    await make_apartment(title="Listed")

    result = await get_available_apartments(db, SearchFilters())

    assert titles(result) == ["Listed"]


async def test_newest_first(db, make_apartment):
    await make_apartment(title="First")
    await make_apartment(title="Second")
    await make_apartment(title="Third")

    result = await get_available_apartments(db, SearchFilters())

    assert titles(result) == ["Third", "Second", "First"]


async def test_confirmed_booking_overlap_excludes(db, make_apartment, make_booking):
    booked = await make_apartment(title="Booked")
    await make_apartment(title="Free")
    await make_booking(booked, date(2025, 3, 3), date(2025, 3, 7), status="confirmed")

    result = await get_available_apartments(db, march())

    assert titles(result) == ["Free"]


async def test_pending_and_cancelled_bookings_do_not_exclude(db, make_apartment, make_booking):
    apartment = await make_apartment(title="Requested")
    await make_booking(apartment, MARCH_1, MARCH_5, status="pending")
    await make_booking(apartment, MARCH_1, MARCH_5, status="cancelled")

    result = await get_available_apartments(db, march())

    assert titles(result) == ["Requested"]


async def test_touching_dates_count_as_overlap(db, make_apartment, make_booking):
    apartment = await make_apartment(title="Turnover")
    # booking ends on the requested check-in day
    await make_booking(apartment, date(2025, 2, 25), MARCH_1, status="confirmed")

    result = await get_available_apartments(db, march())

    assert result.apartments == []


async def test_booking_outside_range_does_not_exclude(db, make_apartment, make_booking):
    apartment = await make_apartment(title="Later")
    await make_booking(apartment, date(2025, 3, 10), date(2025, 3, 12), status="confirmed")

    result = await get_available_apartments(db, march())

    assert titles(result) == ["Later"]


async def test_blocking_override_excludes(db, make_apartment, make_override):
    blocked = await make_apartment(title="Maintenance")
    open_period = await make_apartment(title="Open")
    await make_override(blocked, date(2025, 2, 28), date(2025, 3, 2))
    await make_override(open_period, MARCH_1, MARCH_5, is_available=True)

    result = await get_available_apartments(db, march())

    assert titles(result) == ["Open"]


async def test_dates_ignored_unless_both_given(db, make_apartment, make_booking):
    apartment = await make_apartment(title="Booked")
    await make_booking(apartment, MARCH_1, MARCH_5, status="confirmed")

    result = await get_available_apartments(db, SearchFilters(check_in=MARCH_1))

    assert titles(result) == ["Booked"]


async def test_amenities_are_a_strict_and(db, make_apartment):
    await make_apartment(title="Both", characteristics={"wifi": True, "pool": True})
    await make_apartment(title="Wifi only", characteristics={"wifi": True, "pool": False})
    await make_apartment(title="Truthy string", characteristics={"wifi": True, "pool": "yes"})

    result = await get_available_apartments(db, SearchFilters(amenities=[Amenity.WIFI, Amenity.POOL]))

    assert titles(result) == ["Both"]


def test_filter_by_amenities_treats_missing_key_as_false():
    with_wifi = Apartment(title="a", characteristics={"wifi": True})
    bare = Apartment(title="b", characteristics={})
    no_characteristics = Apartment(title="c", characteristics=None)

    kept = filter_by_amenities([with_wifi, bare, no_characteristics], ["wifi"])

    assert kept == [with_wifi]
    assert filter_by_amenities([bare], []) == [bare]


async def test_missing_override_table_degrades_but_still_answers(app, db, make_apartment, make_booking):
    booked = await make_apartment(title="Booked")
    await make_apartment(title="Free")
    await make_booking(booked, MARCH_1, MARCH_5, status="confirmed")
    async with app.state.engine.begin() as conn:
        await conn.execute(text("DROP TABLE apartment_availability"))

    result = await get_available_apartments(db, march())

    assert result.degraded
    assert result.errors == ["availability overrides could not be checked"]
    # confirmed bookings were still applied
    assert titles(result) == ["Free"]


async def test_unexpected_failure_returns_empty_result(db, make_apartment, monkeypatch):
    await make_apartment()

    async def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(crud_apartments, "list_available_candidates", broken)

    result = await get_available_apartments(db, SearchFilters())

    assert result.apartments == []
    assert result.degraded
    assert "search failed" in result.errors


async def test_search_endpoint(client, make_apartment, make_booking):
    booked = await make_apartment(title="Booked", max_guests=4)
    await make_apartment(title="Pool", max_guests=4, characteristics={"pool": True})
    await make_apartment(title="Small", max_guests=1, characteristics={"pool": True})
    await make_booking(booked, MARCH_1, MARCH_5, status="confirmed")

    resp = await client.get(
        "/api/apartments",
        params={"check_in": "2025-03-01", "check_out": "2025-03-05", "guests": 3},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [a["title"] for a in body["data"]["items"]] == ["Pool"]
    assert body["data"]["total"] == 1
    assert body["data"]["degraded"] is False


async def test_search_endpoint_rejects_unknown_amenity(client):
    resp = await client.get("/api/apartments", params={"amenities": "jacuzzi"})

    assert resp.status_code == 422


async def test_search_ignores_retired_amenity_keys(client, make_apartment):
    await make_apartment(title="Legacy", characteristics={"wifi": True, "sauna": True})

    resp = await client.get("/api/apartments")

    assert resp.status_code == 200
    (item,) = resp.json()["data"]["items"]
    assert item["characteristics"]["wifi"] is True
    assert "sauna" not in item["characteristics"]


async def test_unreadable_row_is_skipped_and_marks_degraded(client, make_apartment):
    await make_apartment(title="Broken", characteristics={"bedrooms": -1})
    await make_apartment(title="Fine")

    resp = await client.get("/api/apartments")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [a["title"] for a in data["items"]] == ["Fine"]
    assert data["total"] == 1
    assert data["degraded"] is True

    home = await client.get("/es")
    assert home.status_code == 200
    assert [a["title"] for a in home.json()["apartments"]["items"]] == ["Fine"]


def test_search_result_degraded_follows_errors():
    assert SearchResult(apartments=[]).degraded is False
    assert SearchResult(apartments=[], errors=["availability_periods"]).degraded is True
