# rentals/db/crud_bookings.py

import logging
from datetime import date
from typing import Dict, List, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rentals.db.models import Booking

logger = logging.getLogger(__name__)


async def create_booking(
    db: AsyncSession,
    *,
    apartment_id: int,
    guest_name: str,
    guest_email: str,
    guest_phone: Optional[str],
    check_in: date,
    check_out: date,
    total_guests: int,
    total_price: float,
    notes: Optional[str] = None,
) -> Optional[Booking]:
    """
    Insert a booking request. New bookings are always 'pending'.
    Returns None when the store rejects the row.
    """
    booking = Booking(
        apartment_id=apartment_id,
        guest_name=guest_name,
        guest_email=guest_email,
        guest_phone=guest_phone,
        check_in=check_in,
        check_out=check_out,
        total_guests=total_guests,
        total_price=total_price,
        notes=notes,
        status="pending",
    )
    try:
        db.add(booking)
        await db.commit()
        await db.refresh(booking)
    except SQLAlchemyError:
        logger.exception("booking insert failed for apartment %s", apartment_id)
        await db.rollback()
        return None
    logger.info("booking %s created for apartment %s", booking.id, apartment_id)
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    res = await db.execute(select(Booking).where(Booking.id == booking_id))
    return res.scalar_one_or_none()


async def list_all_bookings(db: AsyncSession) -> List[Booking]:
    """
    Admin reservations list with apartment title/address loaded.
    """
    stmt = (
        select(Booking)
        .options(selectinload(Booking.apartment))
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_bookings_for_apartment(db: AsyncSession, apartment_id: int) -> List[Booking]:
    stmt = (
        select(Booking)
        .where(Booking.apartment_id == apartment_id)
        .order_by(Booking.check_in.asc())
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_confirmed_apartment_ids(
    db: AsyncSession,
    check_in: date,
    check_out: date,
) -> Set[int]:
    """
    Apartments holding a *confirmed* booking that overlaps [check_in, check_out].
    Pending requests are not holds.
    """
    stmt = (
        select(Booking.apartment_id)
        .where(Booking.status == "confirmed")
        .where(Booking.check_in <= check_out)
        .where(Booking.check_out >= check_in)
    )
    res = await db.execute(stmt)
    return set(res.scalars().all())


async def update_booking_status(
    db: AsyncSession,
    booking_id: int,
    status: str,
) -> Optional[Booking]:
    # no transition guard: any status may move to any other
    booking = await get_booking(db, booking_id)
    if booking is None:
        return None
    booking.status = status
    try:
        db.add(booking)
        await db.commit()
        await db.refresh(booking)
    except SQLAlchemyError:
        logger.exception("status update failed for booking %s", booking_id)
        await db.rollback()
        return None
    return booking


async def delete_booking(db: AsyncSession, booking: Booking) -> bool:
    await db.delete(booking)
    await db.commit()
    return True


async def count_bookings_by_status(db: AsyncSession) -> Dict[str, int]:
    res = await db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    counts = {"pending": 0, "confirmed": 0, "cancelled": 0}
    for status, count in res.all():
        counts[status] = int(count)
    return counts
