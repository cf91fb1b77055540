# rentals/services/whatsapp.py
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from urllib.parse import quote

from rentals.db.models import Apartment, Booking

logger = logging.getLogger(__name__)

# left unescaped, like encodeURIComponent
_URI_SAFE = "!~*'()"


def long_date(d: date) -> str:
    """Monday, January 15, 2024"""
    return f"{d:%A, %B} {d.day}, {d.year}"


def format_amount(value: Union[Decimal, float, int]) -> str:
    value = Decimal(str(value))
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.normalize())


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def clean_phone(number: Optional[str]) -> str:
    return re.sub(r"[^0-9]", "", number or "")


def booking_message(apartment: Apartment, booking: Booking) -> str:
    nights = (booking.check_out - booking.check_in).days
    return (
        f"Hi! I'm interested in booking {apartment.title} for {plural(nights, 'night')} "
        f"({long_date(booking.check_in)} to {long_date(booking.check_out)}) "
        f"for {plural(booking.total_guests, 'guest')}. "
        f"Total: ${format_amount(booking.total_price)}. "
        "Please let me know about availability and payment details."
    )


def enquiry_message(apartment: Apartment) -> str:
    return (
        f"Hi! I'm interested in {apartment.title}. "
        "Could you please provide more information about availability and pricing?"
    )


def generate_whatsapp_url(apartment: Apartment, booking: Optional[Booking] = None) -> str:
    """
    wa.me chat link for the apartment owner; "" when no phone number is on file.
    Prefers whatsapp_number over contact_phone.
    """
    number = clean_phone(apartment.whatsapp_number or apartment.contact_phone)
    if not number:
        logger.warning("no WhatsApp or contact phone for apartment %s", apartment.id)
        return ""

    message = booking_message(apartment, booking) if booking else enquiry_message(apartment)
    return f"https://wa.me/{number}?text={quote(message, safe=_URI_SAFE)}"
