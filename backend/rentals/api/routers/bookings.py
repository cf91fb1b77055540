# rentals/api/routers/bookings.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import get_app_settings, require_admin
from rentals.core.config import Settings
from rentals.db import crud_bookings
from rentals.db.session import get_db
from rentals.schemas.apartment import ApartmentOut
from rentals.schemas.booking import BOOKING_STATUSES, BookingOut, BookingWithApartment
from rentals.services.booking import BookingError, parse_booking_request, place_booking

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("")
async def create_booking(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Public booking request. Always stored as 'pending'; owner and guest are emailed.
    """
    try:
        body = await request.json()
        payload = parse_booking_request(body)
        placed = await place_booking(db, settings, payload)
    except BookingError as e:
        return _error(e.message, e.status_code)
    except Exception:
        logger.exception("error in booking API")
        return _error("Internal server error", 500)

    return {
        "success": True,
        "booking": BookingOut.model_validate(placed.booking).model_dump(),
        "apartment": ApartmentOut.model_validate(placed.apartment).model_dump(),
        "emails": placed.emails.model_dump(),
    }


@router.get("", dependencies=[Depends(require_admin)])
async def list_bookings(db: AsyncSession = Depends(get_db)):
    try:
        bookings = await crud_bookings.list_all_bookings(db)
    except SQLAlchemyError:
        logger.exception("error fetching bookings")
        return _error("Failed to fetch bookings", 500)
    return {"bookings": [BookingWithApartment.model_validate(b).model_dump() for b in bookings]}


@router.patch("", dependencies=[Depends(require_admin)])
async def update_booking_status(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Body: {"id": ..., "status": "pending" | "confirmed" | "cancelled"}.
    Any status may be set from any other.
    """
    try:
        body = await request.json()
        if not isinstance(body, dict) or not body.get("id") or not body.get("status"):
            return _error("Missing required fields: id and status", 400)

        status = body["status"]
        if status not in BOOKING_STATUSES:
            return _error("Invalid status value", 400)

        try:
            booking_id = int(body["id"])
        except (TypeError, ValueError):
            return _error("Invalid booking id", 400)

        booking = await crud_bookings.update_booking_status(db, booking_id, status)
        if not booking:
            return _error("Failed to update booking status", 500)
    except Exception:
        logger.exception("error updating booking")
        return _error("Internal server error", 500)

    logger.info("booking %s set to %s", booking.id, status)
    return {"booking": BookingOut.model_validate(booking).model_dump()}
