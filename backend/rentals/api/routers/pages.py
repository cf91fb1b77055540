# rentals/api/routers/pages.py
"""
Locale-prefixed pages. Each returns the view model its template renders;
markup lives in the frontend.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import get_app_settings, require_admin
from rentals.api.routers.apartments import apartment_detail, search
from rentals.api.routers.auth import clear_session_cookie
from rentals.core.config import Settings
from rentals.db import crud_apartments, crud_bookings
from rentals.db.session import get_db
from rentals.schemas.apartment import Amenity, ApartmentOut, SearchFilters
from rentals.schemas.booking import BookingWithApartment
from rentals.schemas.user import UserOut

router = APIRouter()


def valid_locale(locale: str, settings: Settings = Depends(get_app_settings)) -> str:
    if locale not in settings.LOCALES:
        raise HTTPException(status_code=404, detail="Not found")
    return locale


def _login_page(locale: str) -> dict:
    return {"page": "login", "locale": locale, "action": "/api/auth/login"}


@router.get("/")
async def root(request: Request):
    return RedirectResponse(f"/{request.state.locale}", status_code=307)


@router.get("/apartment/{apartment_id}")
async def apartment_redirect(apartment_id: int, settings: Settings = Depends(get_app_settings)):
    return RedirectResponse(f"/{settings.DEFAULT_LOCALE}/apartment/{apartment_id}", status_code=307)


@router.get("/auth/login")
async def login_page(request: Request):
    return _login_page(request.state.locale)


@router.post("/auth/signout")
async def signout(settings: Settings = Depends(get_app_settings)):
    response = RedirectResponse("/", status_code=303)
    clear_session_cookie(response, settings)
    return response


@router.get("/{locale}")
async def home_page(
    request: Request,
    locale: str = Depends(valid_locale),
    db: AsyncSession = Depends(get_db),
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    guests: int = Query(1, ge=1),
    amenities: List[Amenity] = Query([]),
):
    filters = SearchFilters(check_in=check_in, check_out=check_out, guests=guests, amenities=amenities)
    user = request.state.user
    return {
        "page": "home",
        "locale": locale,
        "user": UserOut.model_validate(user).model_dump() if user else None,
        "filters": filters.model_dump(),
        "apartments": await search(db, filters),
    }


@router.get("/{locale}/auth/login")
async def localized_login_page(locale: str = Depends(valid_locale)):
    return _login_page(locale)


@router.post("/{locale}/auth/signout")
async def localized_signout(
    locale: str = Depends(valid_locale),
    settings: Settings = Depends(get_app_settings),
):
    response = RedirectResponse(f"/{locale}", status_code=303)
    clear_session_cookie(response, settings)
    return response


@router.get("/{locale}/apartment/{apartment_id}")
async def apartment_page(
    apartment_id: int,
    locale: str = Depends(valid_locale),
    db: AsyncSession = Depends(get_db),
):
    apartment = await crud_apartments.get_apartment(db, apartment_id, active_only=True)
    if not apartment:
        raise HTTPException(status_code=404, detail="Apartment not found")
    return {"page": "apartment", "locale": locale, "apartment": apartment_detail(apartment).model_dump()}


@router.get("/{locale}/admin")
async def admin_page(
    locale: str = Depends(valid_locale),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    apartments = await crud_apartments.list_all_apartments(db)
    bookings = await crud_bookings.list_all_bookings(db)
    return {
        "page": "admin",
        "locale": locale,
        "user": UserOut.model_validate(current_user).model_dump(),
        "apartments": [ApartmentOut.model_validate(a).model_dump() for a in apartments],
        "reservations": [BookingWithApartment.model_validate(b).model_dump() for b in bookings],
    }
