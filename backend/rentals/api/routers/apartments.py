# rentals/api/routers/apartments.py
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.db import crud_apartments
from rentals.db.models import Apartment
from rentals.db.session import get_db
from rentals.schemas.apartment import (
    Amenity,
    ApartmentDetail,
    ApartmentOut,
    Quote,
    SearchFilters,
)
from rentals.services.availability import get_available_apartments
from rentals.services.whatsapp import generate_whatsapp_url
from rentals.utils.maps import get_best_coordinates, get_google_maps_static_url

logger = logging.getLogger(__name__)

router = APIRouter()


def apartment_detail(apartment: Apartment) -> ApartmentDetail:
    """
    Apartment plus what the detail page needs: map position and a contact link.
    """
    coordinates = get_best_coordinates(
        apartment.latitude,
        apartment.longitude,
        apartment.google_maps_url,
    )
    detail = ApartmentDetail.model_validate(apartment)
    detail.coordinates = coordinates
    if coordinates:
        detail.map_url = get_google_maps_static_url(coordinates.latitude, coordinates.longitude)
    detail.whatsapp_url = generate_whatsapp_url(apartment)
    return detail


async def search(db: AsyncSession, filters: SearchFilters) -> dict:
    result = await get_available_apartments(db, filters)
    degraded = result.degraded
    items = []
    for apartment in result.apartments:
        try:
            items.append(ApartmentOut.model_validate(apartment).model_dump())
        except ValidationError:
            logger.exception("skipping apartment %s with unreadable stored data", apartment.id)
            degraded = True
    return {"items": items, "total": len(items), "degraded": degraded}


@router.get("")
async def search_apartments(
    db: AsyncSession = Depends(get_db),
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    guests: int = Query(1, ge=1),
    amenities: List[Amenity] = Query([]),
):
    """
    Public search. Dates only filter when both are given.
    """
    filters = SearchFilters(
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        amenities=amenities,
    )
    return {"success": True, "data": await search(db, filters)}


@router.get("/{apartment_id}")
async def get_apartment_detail(apartment_id: int, db: AsyncSession = Depends(get_db)):
    apartment = await crud_apartments.get_apartment(db, apartment_id, active_only=True)
    if not apartment:
        return JSONResponse({"error": "Apartment not found"}, status_code=404)
    return {"success": True, "data": apartment_detail(apartment).model_dump()}


@router.get("/{apartment_id}/quote")
async def quote_stay(
    apartment_id: int,
    check_in: date,
    check_out: date,
    db: AsyncSession = Depends(get_db),
):
    """
    Price of a stay: nights * price_per_night.
    """
    if check_out <= check_in:
        raise HTTPException(status_code=400, detail="Invalid dates")

    apartment = await crud_apartments.get_apartment(db, apartment_id, active_only=True)
    if not apartment:
        raise HTTPException(status_code=404, detail="Apartment not found")

    nights = (check_out - check_in).days
    price = float(apartment.price_per_night)
    return Quote(
        apartment_id=apartment.id,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        price_per_night=price,
        total_price=round(nights * price, 2),
    )
