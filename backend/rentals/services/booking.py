# rentals/services/booking.py
import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.core.config import Settings
from rentals.db import crud_apartments, crud_bookings
from rentals.db.models import Apartment, Booking
from rentals.schemas.booking import REQUIRED_BOOKING_FIELDS, BookingCreate, EmailResults
from rentals.services.email import send_booking_emails

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class MissingFieldError(BookingError):
    status_code = 400

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidBookingError(BookingError):
    status_code = 400
    message = "Invalid booking data"


class BookingNotCreatedError(BookingError):
    status_code = 500
    message = "Failed to create booking"


class ApartmentNotFoundError(BookingError):
    status_code = 404
    message = "Apartment not found"


class PlacedBooking(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    booking: Booking
    apartment: Apartment
    emails: EmailResults


def parse_booking_request(body: Any) -> BookingCreate:
    """
    Validate a raw booking request body.
    Required fields are checked in a fixed order and a falsy value counts as missing.
    Any client supplied ``status`` is ignored.
    """
    if not isinstance(body, dict):
        raise InvalidBookingError()

    for field in REQUIRED_BOOKING_FIELDS:
        if not body.get(field):
            raise MissingFieldError(field)

    data = {k: v for k, v in body.items() if k != "status"}
    if not data.get("notes"):
        data["notes"] = None
    try:
        return BookingCreate.model_validate(data)
    except ValidationError as e:
        logger.info("rejected booking request: %s", e.errors())
        raise InvalidBookingError()


async def place_booking(db: AsyncSession, settings: Settings, payload: BookingCreate) -> PlacedBooking:
    booking = await crud_bookings.create_booking(db, **payload.model_dump())
    if booking is None:
        raise BookingNotCreatedError()

    apartment = await crud_apartments.get_apartment(db, booking.apartment_id, active_only=True)
    if apartment is None:
        logger.error("apartment not found for booking %s: %s", booking.id, booking.apartment_id)
        raise ApartmentNotFoundError()

    # booking is stored by now; mail errors only show up in `emails`
    try:
        emails = EmailResults.model_validate(await send_booking_emails(settings, booking, apartment))
    except Exception:
        logger.exception("booking %s emails failed", booking.id)
        emails = EmailResults()

    logger.info("booking %s email results: %s", booking.id, emails.model_dump())
    return PlacedBooking(booking=booking, apartment=apartment, emails=emails)
