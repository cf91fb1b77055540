# rentals/api/routers/admin.py
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import get_app_settings, require_admin
from rentals.core.config import Settings
from rentals.db import crud_apartments, crud_availability, crud_bookings
from rentals.db.models import Apartment
from rentals.db.session import get_db
from rentals.schemas.apartment import ApartmentCreate, ApartmentOut, ApartmentUpdate
from rentals.schemas.availability import AvailabilityCreate, AvailabilityOut
from rentals.schemas.booking import BookingOut
from rentals.services.storage import (
    ImageValidationError,
    delete_apartment_image,
    save_apartment_images,
)
from rentals.utils.maps import extract_coordinates_from_google_maps_url

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

# optional columns an update may set back to null
CLEARABLE_FIELDS = {"latitude", "longitude", "google_maps_url", "contact_phone", "whatsapp_number"}


def _fill_coordinates(data: dict) -> dict:
    """
    Take latitude/longitude from google_maps_url when they were not given.
    """
    if data.get("google_maps_url") and (data.get("latitude") is None or data.get("longitude") is None):
        coords = extract_coordinates_from_google_maps_url(data["google_maps_url"])
        if coords:
            data["latitude"] = coords.latitude
            data["longitude"] = coords.longitude
    return data


async def _get_or_404(db: AsyncSession, apartment_id: int) -> Apartment:
    apartment = await crud_apartments.get_apartment(db, apartment_id)
    if not apartment:
        raise HTTPException(status_code=404, detail="Not found")
    return apartment


@router.get("/stats")
async def admin_stats(db: AsyncSession = Depends(get_db)):
    return {
        "apartments": await crud_apartments.count_apartments(db),
        "bookings": await crud_bookings.count_bookings_by_status(db),
    }


# ---------------------------
# Apartments
# ---------------------------
@router.get("/apartments")
async def admin_apartments(db: AsyncSession = Depends(get_db)):
    """
    Every apartment, active or not.
    """
    items = await crud_apartments.list_all_apartments(db)
    return {"data": {"items": [ApartmentOut.model_validate(a).model_dump() for a in items]}}


@router.post("/apartments", status_code=201)
async def create_apartment(body: ApartmentCreate, db: AsyncSession = Depends(get_db)):
    data = body.model_dump()
    data["characteristics"] = body.characteristics.to_db()
    apartment = await crud_apartments.create_apartment(db, **_fill_coordinates(data))
    logger.info("apartment %s created", apartment.id)
    return {"message": "created", "data": ApartmentOut.model_validate(apartment).model_dump()}


@router.get("/apartments/{apartment_id}")
async def get_apartment(apartment_id: int, db: AsyncSession = Depends(get_db)):
    apartment = await _get_or_404(db, apartment_id)
    return {"data": ApartmentOut.model_validate(apartment).model_dump()}


@router.put("/apartments/{apartment_id}")
async def update_apartment(
    apartment_id: int,
    body: ApartmentUpdate,
    db: AsyncSession = Depends(get_db),
):
    apartment = await _get_or_404(db, apartment_id)

    data = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_FIELDS
    }
    if body.characteristics is not None:
        data["characteristics"] = body.characteristics.to_db()

    images = data.get("images", apartment.images) or []
    index = data.get("principal_image_index", apartment.principal_image_index)
    if "principal_image_index" in data and images and not 0 <= index < len(images):
        raise HTTPException(status_code=422, detail="principal_image_index must point into images")

    apartment = await crud_apartments.update_apartment(db, apartment, _fill_coordinates(data))
    return {"message": "updated", "data": ApartmentOut.model_validate(apartment).model_dump()}


@router.delete("/apartments/{apartment_id}")
async def delete_apartment(
    apartment_id: int,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    apartment = await _get_or_404(db, apartment_id)
    images = list(apartment.images or [])
    await crud_apartments.delete_apartment(db, apartment)
    for url in images:
        try:
            delete_apartment_image(settings, url)
        except (ImageValidationError, OSError):
            logger.warning("could not remove image %s of deleted apartment %s", url, apartment_id)
    return {"message": "deleted"}


# ---------------------------
# Images
# ---------------------------
@router.post("/apartments/{apartment_id}/images")
async def upload_images(
    apartment_id: int,
    images: List[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    apartment = await _get_or_404(db, apartment_id)

    uploads = [img for img in images if img.filename]
    try:
        urls = await save_apartment_images(settings, uploads, apartment.id)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    apartment = await crud_apartments.update_apartment(
        db, apartment, {"images": list(apartment.images or []) + urls}
    )
    return {"urls": urls, "data": ApartmentOut.model_validate(apartment).model_dump()}


@router.delete("/apartments/{apartment_id}/images")
async def remove_image(
    apartment_id: int,
    url: str = Query(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    apartment = await _get_or_404(db, apartment_id)
    images = list(apartment.images or [])
    if url not in images:
        raise HTTPException(status_code=404, detail="Image not found")

    removed_at = images.index(url)
    images.remove(url)
    index = apartment.principal_image_index
    if removed_at < index:
        index -= 1

    try:
        delete_apartment_image(settings, url)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    apartment = await crud_apartments.update_apartment(
        db, apartment, {"images": images, "principal_image_index": index}
    )
    return {"message": "deleted", "data": ApartmentOut.model_validate(apartment).model_dump()}


# ---------------------------
# Availability overrides
# ---------------------------
@router.get("/apartments/{apartment_id}/availability")
async def list_availability(apartment_id: int, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, apartment_id)
    periods = await crud_availability.list_for_apartment(db, apartment_id)
    return {"items": [AvailabilityOut.model_validate(p).model_dump() for p in periods]}


@router.post("/apartments/{apartment_id}/availability", status_code=201)
async def create_availability(
    apartment_id: int,
    body: AvailabilityCreate,
    db: AsyncSession = Depends(get_db),
):
    await _get_or_404(db, apartment_id)
    period = await crud_availability.create_period(db, apartment_id=apartment_id, **body.model_dump())
    return {"data": AvailabilityOut.model_validate(period).model_dump()}


@router.delete("/availability/{period_id}")
async def delete_availability(period_id: int, db: AsyncSession = Depends(get_db)):
    period = await crud_availability.get_period(db, period_id)
    if not period:
        raise HTTPException(status_code=404, detail="Not found")
    await crud_availability.delete_period(db, period)
    return {"message": "deleted"}


# ---------------------------
# Bookings
# ---------------------------
@router.get("/apartments/{apartment_id}/bookings")
async def apartment_bookings(apartment_id: int, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, apartment_id)
    bookings = await crud_bookings.list_bookings_for_apartment(db, apartment_id)
    return {"items": [BookingOut.model_validate(b).model_dump() for b in bookings]}


@router.delete("/bookings/{booking_id}")
async def delete_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    booking = await crud_bookings.get_booking(db, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Not found")
    await crud_bookings.delete_booking(db, booking)
    return {"message": "deleted"}
