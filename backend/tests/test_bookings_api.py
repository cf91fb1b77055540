from datetime import date

import pytest

from rentals.db import crud_bookings, crud_users
from rentals.db.models import Booking
from rentals.schemas.booking import REQUIRED_BOOKING_FIELDS
from rentals.services.booking import (
    InvalidBookingError,
    MissingFieldError,
    parse_booking_request,
)


@pytest.fixture
def booking_body():
    def _body(apartment_id: int, **overrides) -> dict:
        body = {
            "apartment_id": apartment_id,
            "guest_name": "Lucía Pérez",
            "guest_email": "lucia@example.com",
            "guest_phone": "+54 9 261 555 1234",
            "check_in": "2025-03-01",
            "check_out": "2025-03-04",
            "total_guests": 2,
            "total_price": 150,
            "notes": "Late arrival",
        }
        body.update(overrides)
        return body

    return _body


# ---------------------------
# Request parsing
# ---------------------------
def test_missing_fields_reported_in_order(booking_body):
    full = booking_body(1)
    for i, field in enumerate(REQUIRED_BOOKING_FIELDS):
        body = {k: v for k, v in full.items() if k not in REQUIRED_BOOKING_FIELDS[i:]}
        with pytest.raises(MissingFieldError) as exc:
            parse_booking_request(body)
        assert exc.value.field == field

    assert parse_booking_request(full).apartment_id == 1


@pytest.mark.parametrize("field", REQUIRED_BOOKING_FIELDS)
def test_falsy_value_counts_as_missing(booking_body, field):
    body = booking_body(1)
    body[field] = 0 if field in ("total_guests", "total_price") else ""

    with pytest.raises(MissingFieldError) as exc:
        parse_booking_request(body)

    assert exc.value.message == f"Missing required field: {field}"
    assert exc.value.status_code == 400


def test_first_missing_field_wins():
    with pytest.raises(MissingFieldError) as exc:
        parse_booking_request({"guest_name": "x"})
    assert exc.value.field == "apartment_id"


def test_client_status_is_dropped(booking_body):
    payload = parse_booking_request(booking_body(1, status="confirmed"))
    assert "status" not in payload.model_dump()


def test_bad_values_are_invalid(booking_body):
    with pytest.raises(InvalidBookingError):
        parse_booking_request(booking_body(1, check_out="2025-02-01"))
    with pytest.raises(InvalidBookingError):
        parse_booking_request(booking_body(1, guest_email="not-an-email"))
    with pytest.raises(InvalidBookingError):
        parse_booking_request(["not", "an", "object"])


# ---------------------------
# POST /api/bookings
# ---------------------------
async def test_create_booking_is_always_pending(client, db, make_apartment, booking_body):
    apartment = await make_apartment(title="Loft Centro")

    resp = await client.post("/api/bookings", json=booking_body(apartment.id, status="confirmed"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["booking"]["status"] == "pending"
    assert body["booking"]["total_price"] == 150
    assert body["booking"]["notes"] == "Late arrival"
    assert body["apartment"]["title"] == "Loft Centro"
    # no EMAIL_RECIPIENT configured in tests
    assert body["emails"] == {"owner_sent": False, "guest_sent": False}

    stored = await db.get(Booking, body["booking"]["id"])
    assert stored.status == "pending"


async def test_missing_total_price(client, make_apartment, booking_body):
    apartment = await make_apartment()
    body = booking_body(apartment.id)
    del body["total_price"]

    resp = await client.post("/api/bookings", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required field: total_price"}


async def test_empty_notes_stored_as_null(client, make_apartment, booking_body):
    apartment = await make_apartment()

    resp = await client.post("/api/bookings", json=booking_body(apartment.id, notes=""))

    assert resp.status_code == 200
    assert resp.json()["booking"]["notes"] is None


async def test_store_failure_returns_500(client, make_apartment, booking_body, monkeypatch):
    apartment = await make_apartment()

    async def rejected(db, **kwargs):
        return None

    monkeypatch.setattr(crud_bookings, "create_booking", rejected)

    resp = await client.post("/api/bookings", json=booking_body(apartment.id))

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to create booking"}


async def test_unknown_apartment_is_rejected_by_store(client, booking_body):
    resp = await client.post("/api/bookings", json=booking_body(4242))

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to create booking"}


async def test_inactive_apartment_returns_404(client, make_apartment, booking_body):
    apartment = await make_apartment(is_active=False)

    resp = await client.post("/api/bookings", json=booking_body(apartment.id))

    assert resp.status_code == 404
    assert resp.json() == {"error": "Apartment not found"}


async def test_malformed_json_returns_500(client):
    resp = await client.post(
        "/api/bookings",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


async def test_invalid_dates_return_400(client, make_apartment, booking_body):
    apartment = await make_apartment()

    resp = await client.post(
        "/api/bookings", json=booking_body(apartment.id, check_out="2025-02-20")
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid booking data"}


async def test_email_failure_does_not_fail_booking(client, db, make_apartment, booking_body, monkeypatch):
    apartment = await make_apartment()

    async def exploding(*args, **kwargs):
        raise RuntimeError("smtp relay down")

    monkeypatch.setattr("rentals.services.booking.send_booking_emails", exploding)

    resp = await client.post("/api/bookings", json=booking_body(apartment.id))

    assert resp.status_code == 200
    assert resp.json()["emails"] == {"owner_sent": False, "guest_sent": False}
    assert await db.get(Booking, resp.json()["booking"]["id"]) is not None


async def test_email_results_are_reported(client, make_apartment, booking_body, monkeypatch):
    apartment = await make_apartment()
    sent = []

    async def fake_send(settings, booking, apt):
        sent.append((booking.guest_email, apt.id))
        return {"owner_sent": True, "guest_sent": False}

    monkeypatch.setattr("rentals.services.booking.send_booking_emails", fake_send)

    resp = await client.post("/api/bookings", json=booking_body(apartment.id))

    assert resp.json()["emails"] == {"owner_sent": True, "guest_sent": False}
    assert sent == [("lucia@example.com", apartment.id)]


async def test_partial_email_results_are_filled_in(client, make_apartment, booking_body, monkeypatch):
    apartment = await make_apartment()

    async def owner_only(settings, booking, apt):
        return {"owner_sent": True}

    monkeypatch.setattr("rentals.services.booking.send_booking_emails", owner_only)

    resp = await client.post("/api/bookings", json=booking_body(apartment.id))

    assert resp.status_code == 200
    assert resp.json()["emails"] == {"owner_sent": True, "guest_sent": False}


# ---------------------------
# GET / PATCH /api/bookings (admin)
# ---------------------------
async def test_list_requires_login(client):
    resp = await client.get("/api/bookings")
    assert resp.status_code == 401


async def test_list_forbidden_for_plain_user(client, db, login_as):
    user = await crud_users.create_user(db, name="Guest", email="guest@example.com", password="pw")
    login_as(user)

    resp = await client.get("/api/bookings")

    assert resp.status_code == 403


async def test_list_includes_apartment(client, as_admin, make_apartment, make_booking):
    apartment = await make_apartment(title="Casa Chacras", address="Chacras de Coria")
    await make_booking(apartment, date(2025, 3, 1), date(2025, 3, 3))

    resp = await client.get("/api/bookings")

    assert resp.status_code == 200
    (row,) = resp.json()["bookings"]
    assert row["apartment"] == {"title": "Casa Chacras", "address": "Chacras de Coria"}


@pytest.fixture
async def pending_booking(make_apartment, make_booking):
    apartment = await make_apartment()
    return await make_booking(apartment, date(2025, 3, 1), date(2025, 3, 3))


@pytest.mark.parametrize(
    "body",
    [{}, {"id": 1}, {"status": "confirmed"}, {"id": "", "status": "confirmed"}],
)
async def test_patch_requires_id_and_status(client, as_admin, body):
    resp = await client.patch("/api/bookings", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required fields: id and status"}


async def test_patch_rejects_unknown_status(client, as_admin, pending_booking):
    resp = await client.patch("/api/bookings", json={"id": pending_booking.id, "status": "approved"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid status value"}


async def test_patch_rejects_non_numeric_id(client, as_admin):
    resp = await client.patch("/api/bookings", json={"id": "abc", "status": "confirmed"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid booking id"}


async def test_patch_unknown_booking(client, as_admin):
    resp = await client.patch("/api/bookings", json={"id": 999, "status": "confirmed"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to update booking status"}


async def test_patch_any_transition_allowed(client, as_admin, pending_booking):
    for status in ("cancelled", "confirmed", "pending"):
        resp = await client.patch("/api/bookings", json={"id": pending_booking.id, "status": status})
        assert resp.status_code == 200
        assert resp.json()["booking"]["status"] == status


async def test_confirmed_booking_blocks_search(client, as_admin, pending_booking):
    params = {"check_in": "2025-03-02", "check_out": "2025-03-05"}
    before = await client.get("/api/apartments", params=params)
    assert before.json()["data"]["total"] == 1

    await client.patch("/api/bookings", json={"id": pending_booking.id, "status": "confirmed"})

    after = await client.get("/api/apartments", params=params)
    assert after.json()["data"]["total"] == 0


async def test_patch_malformed_json(client, as_admin):
    resp = await client.patch(
        "/api/bookings",
        content=b"nope",
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
