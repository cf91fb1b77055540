import smtplib
from datetime import date

import pytest

from rentals.core.config import Settings
from rentals.db.models import Apartment, Booking
from rentals.services import email


@pytest.fixture
def mail_settings():
    return Settings(
        _env_file=None,
        EMAIL_SENDER="bookings@example.com",
        EMAIL_PASSWORD="app-password",
        EMAIL_RECIPIENT="owner@example.com",
    )


@pytest.fixture
def booking():
    return Booking(
        id=3,
        guest_name="<b>Lucía</b>",
        guest_email="lucia@example.com",
        guest_phone=None,
        check_in=date(2024, 1, 15),
        check_out=date(2024, 1, 17),
        total_guests=2,
        total_price=200,
        notes=None,
    )


@pytest.fixture
def apartment():
    return Apartment(
        id=1,
        title="Loft Centro",
        description="Bright loft",
        address="San Martín 100",
        price_per_night=100,
        max_guests=2,
        contact_email="owner@example.com",
        contact_phone="+54 261 555 0000",
        whatsapp_number=None,
    )


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_deliver(settings, message):
        sent.append(message)

    monkeypatch.setattr(email, "_deliver", fake_deliver)
    return sent


def test_owner_email_escapes_guest_input(booking, apartment):
    subject, html = email.owner_email(booking, apartment)

    assert subject == "New Booking Request - Loft Centro"
    assert "&lt;b&gt;Lucía&lt;/b&gt;" in html
    assert "<b>Lucía</b>" not in html
    assert "Not provided" in html
    assert "2 nights" in html


def test_guest_email_has_contact_details(booking, apartment):
    subject, html = email.guest_email(booking, apartment)

    assert subject == "Booking Request Confirmation - Loft Centro"
    assert "owner@example.com" in html
    assert "https://wa.me/542615550000" in html


async def test_both_emails_sent(mail_settings, booking, apartment, outbox):
    result = await email.send_booking_emails(mail_settings, booking, apartment)

    assert result == {"owner_sent": True, "guest_sent": True}
    assert sorted(m["To"] for m in outbox) == ["lucia@example.com", "owner@example.com"]
    assert outbox[0]["From"] == "Mendoza Apartments <bookings@example.com>"


async def test_no_recipient_skips_sending(booking, apartment, outbox):
    settings = Settings(_env_file=None, EMAIL_SENDER="a@example.com", EMAIL_PASSWORD="x")

    result = await email.send_booking_emails(settings, booking, apartment)

    assert result == {"owner_sent": False, "guest_sent": False}
    assert outbox == []


async def test_missing_credentials(booking, apartment, outbox):
    settings = Settings(_env_file=None, EMAIL_RECIPIENT="owner@example.com")

    result = await email.send_booking_emails(settings, booking, apartment)

    assert result == {"owner_sent": False, "guest_sent": False}


async def test_smtp_failure_is_reported_not_raised(mail_settings, booking, apartment, monkeypatch):
    def refuse(settings, message):
        if message["To"] == "lucia@example.com":
            raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"no such user")})

    monkeypatch.setattr(email, "_deliver", refuse)

    result = await email.send_booking_emails(mail_settings, booking, apartment)

    assert result == {"owner_sent": True, "guest_sent": False}
