# rentals/services/email.py
"""
Booking notification emails: one to the owner (EMAIL_RECIPIENT), one to the guest.

Delivery is best effort. Nothing in here raises; every failure is logged and
reported back as ``False`` so the booking flow can carry on.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Dict, Tuple

from starlette.concurrency import run_in_threadpool

from rentals.core.config import Settings
from rentals.db.models import Apartment, Booking
from rentals.services.whatsapp import clean_phone, format_amount, long_date, plural

logger = logging.getLogger(__name__)


def _stay_rows(booking: Booking) -> str:
    nights = (booking.check_out - booking.check_in).days
    rows = [
        f"<p><strong>Check-in:</strong> {long_date(booking.check_in)}</p>",
        f"<p><strong>Check-out:</strong> {long_date(booking.check_out)}</p>",
        f"<p><strong>Duration:</strong> {plural(nights, 'night')}</p>",
        f"<p><strong>Guests:</strong> {plural(booking.total_guests, 'guest')}</p>",
        f"<p><strong>Total Price:</strong> ${format_amount(booking.total_price)}</p>",
    ]
    if booking.notes:
        rows.append(f"<p><strong>Notes:</strong> {escape(booking.notes)}</p>")
    return "\n".join(rows)


def _whatsapp_link(apartment: Apartment, label: str) -> str:
    number = clean_phone(apartment.whatsapp_number or apartment.contact_phone)
    if not number:
        return ""
    return f'<p><a href="https://wa.me/{number}" target="_blank">{label}</a></p>'


def owner_email(booking: Booking, apartment: Apartment) -> Tuple[str, str]:
    title = escape(apartment.title)
    html = f"""
<html><body>
<h1>New Booking Request</h1>
<p>A new booking request has been submitted for <strong>{title}</strong>.</p>
<h2>Booking Details</h2>
{_stay_rows(booking)}
<h2>Guest Information</h2>
<p><strong>Name:</strong> {escape(booking.guest_name)}</p>
<p><strong>Email:</strong> {escape(booking.guest_email)}</p>
<p><strong>Phone:</strong> {escape(booking.guest_phone or "Not provided")}</p>
<h2>Apartment Details</h2>
<p><strong>Title:</strong> {title}</p>
<p><strong>Address:</strong> {escape(apartment.address)}</p>
<p><strong>Price per night:</strong> ${format_amount(apartment.price_per_night)}</p>
<p><strong>Max guests:</strong> {apartment.max_guests}</p>
<p>Please contact the guest to confirm the booking and arrange payment.
You can manage this booking in your admin panel.</p>
</body></html>
"""
    return f"New Booking Request - {apartment.title}", html


def guest_email(booking: Booking, apartment: Apartment) -> Tuple[str, str]:
    title = escape(apartment.title)
    phone = (
        f"<p>Phone: {escape(apartment.contact_phone)}</p>" if apartment.contact_phone else ""
    )
    html = f"""
<html><body>
<h1>Booking Request Received!</h1>
<p>Thank you for your interest in <strong>{title}</strong>.</p>
<h2>Your Booking Details</h2>
{_stay_rows(booking)}
<h2>Apartment Information</h2>
<p><strong>Title:</strong> {title}</p>
<p><strong>Address:</strong> {escape(apartment.address)}</p>
<p><strong>Description:</strong> {escape(apartment.description or "")}</p>
<p><strong>Price per night:</strong> ${format_amount(apartment.price_per_night)}</p>
<h2>Next Steps</h2>
<p>We have received your booking request and will contact you shortly to confirm
availability and arrange payment.</p>
<p>Email: {escape(apartment.contact_email)}</p>
{phone}
{_whatsapp_link(apartment, "Contact us on WhatsApp")}
</body></html>
"""
    return f"Booking Request Confirmation - {apartment.title}", html


def _deliver(settings: Settings, message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT) as smtp:
        smtp.starttls()
        smtp.login(settings.EMAIL_SENDER, settings.EMAIL_PASSWORD)
        smtp.send_message(message)


async def send_email(settings: Settings, to: str, subject: str, html: str) -> bool:
    if not settings.EMAIL_SENDER or not settings.EMAIL_PASSWORD:
        logger.error("email credentials not configured (EMAIL_SENDER / EMAIL_PASSWORD)")
        return False

    message = EmailMessage()
    message["From"] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_SENDER))
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    try:
        await run_in_threadpool(_deliver, settings, message)
    except (smtplib.SMTPException, OSError):
        logger.exception("error sending email to %s", to)
        return False

    logger.info("email sent to %s", to)
    return True


async def send_booking_emails(
    settings: Settings,
    booking: Booking,
    apartment: Apartment,
) -> Dict[str, bool]:
    if not settings.EMAIL_RECIPIENT:
        logger.error("EMAIL_RECIPIENT not set; booking %s emails skipped", booking.id)
        return {"owner_sent": False, "guest_sent": False}

    owner_subject, owner_html = owner_email(booking, apartment)
    guest_subject, guest_html = guest_email(booking, apartment)

    owner_sent, guest_sent = await asyncio.gather(
        send_email(settings, settings.EMAIL_RECIPIENT, owner_subject, owner_html),
        send_email(settings, booking.guest_email, guest_subject, guest_html),
    )
    return {"owner_sent": owner_sent, "guest_sent": guest_sent}
