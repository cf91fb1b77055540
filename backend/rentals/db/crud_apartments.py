# rentals/db/crud_apartments.py
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.db.models import Apartment


async def list_available_candidates(
    db: AsyncSession,
    guests: int = 1,
    exclude_ids: Iterable[int] = (),
) -> List[Apartment]:
    """
    Active apartments that fit the party, newest first.
    """
    stmt = (
        select(Apartment)
        .where(Apartment.is_active.is_(True))
        .where(Apartment.max_guests >= guests)
    )
    exclude_ids = set(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(Apartment.id.notin_(exclude_ids))

    stmt = stmt.order_by(Apartment.created_at.desc(), Apartment.id.desc())
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_all_apartments(db: AsyncSession) -> List[Apartment]:
    """
    Admin list: active and inactive, newest first.
    """
    res = await db.execute(
        select(Apartment).order_by(Apartment.created_at.desc(), Apartment.id.desc())
    )
    return list(res.scalars().all())


async def get_apartment(
    db: AsyncSession,
    apartment_id: int,
    active_only: bool = False,
) -> Optional[Apartment]:
    stmt = select(Apartment).where(Apartment.id == apartment_id)
    if active_only:
        stmt = stmt.where(Apartment.is_active.is_(True))
    res = await db.execute(stmt)
    return res.scalars().first()


async def create_apartment(db: AsyncSession, **kwargs) -> Apartment:
    apartment = Apartment(**kwargs)
    db.add(apartment)
    await db.commit()
    await db.refresh(apartment)
    return apartment


async def update_apartment(db: AsyncSession, apartment: Apartment, data: Dict[str, Any]) -> Apartment:
    for k, v in data.items():
        setattr(apartment, k, v)

    images = apartment.images or []
    if not images or apartment.principal_image_index >= len(images):
        apartment.principal_image_index = 0

    db.add(apartment)
    await db.commit()
    await db.refresh(apartment)
    return apartment


async def delete_apartment(db: AsyncSession, apartment: Apartment) -> bool:
    await db.delete(apartment)
    await db.commit()
    return True


async def count_apartments(db: AsyncSession) -> Dict[str, int]:
    total = (await db.execute(select(func.count(Apartment.id)))).scalar_one()
    active = (
        await db.execute(select(func.count(Apartment.id)).where(Apartment.is_active.is_(True)))
    ).scalar_one()
    return {"total": int(total), "active": int(active)}

