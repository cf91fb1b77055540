# rentals/db/crud_availability.py
from datetime import date
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.db.models import ApartmentAvailability


async def list_blocked_apartment_ids(
    db: AsyncSession,
    check_in: date,
    check_out: date,
) -> Set[int]:
    """
    Apartments with an is_available=False override overlapping [check_in, check_out].
    """
    stmt = (
        select(ApartmentAvailability.apartment_id)
        .where(ApartmentAvailability.is_available.is_(False))
        .where(ApartmentAvailability.start_date <= check_out)
        .where(ApartmentAvailability.end_date >= check_in)
    )
    res = await db.execute(stmt)
    return set(res.scalars().all())


async def list_for_apartment(db: AsyncSession, apartment_id: int) -> List[ApartmentAvailability]:
    res = await db.execute(
        select(ApartmentAvailability)
        .where(ApartmentAvailability.apartment_id == apartment_id)
        .order_by(ApartmentAvailability.start_date.asc())
    )
    return list(res.scalars().all())


async def get_period(db: AsyncSession, period_id: int) -> Optional[ApartmentAvailability]:
    res = await db.execute(
        select(ApartmentAvailability).where(ApartmentAvailability.id == period_id)
    )
    return res.scalar_one_or_none()


async def create_period(db: AsyncSession, **kwargs) -> ApartmentAvailability:
    period = ApartmentAvailability(**kwargs)
    db.add(period)
    await db.commit()
    await db.refresh(period)
    return period


async def delete_period(db: AsyncSession, period: ApartmentAvailability) -> bool:
    await db.delete(period)
    await db.commit()
    return True
