# rentals/services/availability.py
"""
Public search: which active apartments can host a party for a date range.

An apartment is excluded when it is too small for the party, when an
``is_available=False`` override overlaps the range, or when a *confirmed*
booking overlaps it. Pending bookings are requests, not holds, and never
exclude anything. Requested amenities are then applied as a strict AND.

Both exclusion sources degrade independently: if one of the queries fails
(the override table may not exist yet on a fresh database) the failure is
logged, recorded on the result and the search carries on without it.
"""
import logging
from typing import Iterable, List, Sequence, Set

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.db import crud_apartments, crud_availability, crud_bookings
from rentals.db.models import Apartment
from rentals.schemas.apartment import Amenity, SearchFilters

logger = logging.getLogger(__name__)


class SearchResult(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    apartments: List[Apartment]
    errors: List[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


def filter_by_amenities(
    apartments: Sequence[Apartment],
    amenities: Iterable[Amenity | str],
) -> List[Apartment]:
    """
    Keep apartments whose characteristics have every requested amenity set to True.
    A missing key counts as False.
    """
    keys = [a.value if isinstance(a, Amenity) else a for a in amenities]
    if not keys:
        return list(apartments)

    def has_all(apartment: Apartment) -> bool:
        characteristics = apartment.characteristics or {}
        return all(characteristics.get(key) is True for key in keys)

    return [a for a in apartments if has_all(a)]


async def _excluded_ids(db: AsyncSession, filters: SearchFilters, errors: List[str]) -> Set[int]:
    excluded: Set[int] = set()

    try:
        excluded |= await crud_availability.list_blocked_apartment_ids(
            db, filters.check_in, filters.check_out
        )
    except SQLAlchemyError as e:
        logger.warning("availability overrides not checked: %s", e)
        errors.append("availability overrides could not be checked")
        await db.rollback()

    try:
        excluded |= await crud_bookings.list_confirmed_apartment_ids(
            db, filters.check_in, filters.check_out
        )
    except SQLAlchemyError as e:
        logger.warning("confirmed bookings not checked: %s", e)
        errors.append("confirmed bookings could not be checked")
        await db.rollback()

    return excluded


async def get_available_apartments(db: AsyncSession, filters: SearchFilters) -> SearchResult:
    errors: List[str] = []
    try:
        excluded: Set[int] = set()
        if filters.check_in and filters.check_out:
            logger.info(
                "checking availability for %s to %s",
                filters.check_in.isoformat(),
                filters.check_out.isoformat(),
            )
            excluded = await _excluded_ids(db, filters, errors)
            if excluded:
                logger.info("excluding %d unavailable apartments", len(excluded))

        apartments = await crud_apartments.list_available_candidates(
            db,
            guests=filters.guests or 1,
            exclude_ids=excluded,
        )

        if filters.amenities:
            apartments = filter_by_amenities(apartments, filters.amenities)
            logger.info("%d apartments left after amenity filter", len(apartments))
    except Exception:
        logger.exception("apartment search failed")
        errors.append("search failed")
        return SearchResult(apartments=[], errors=errors)

    logger.info("found %d available apartments", len(apartments))
    return SearchResult(apartments=apartments, errors=errors)
