# rentals/schemas/booking.py
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

BookingStatus = Literal["pending", "confirmed", "cancelled"]
BOOKING_STATUSES = ("pending", "confirmed", "cancelled")

# Checked in this order; the first missing one is reported
REQUIRED_BOOKING_FIELDS = (
    "apartment_id",
    "guest_name",
    "guest_email",
    "guest_phone",
    "check_in",
    "check_out",
    "total_guests",
    "total_price",
)


class BookingCreate(BaseModel):
    apartment_id: int
    guest_name: str
    guest_email: EmailStr
    guest_phone: str
    check_in: date
    check_out: date
    total_guests: int = Field(..., ge=1)
    total_price: float = Field(..., ge=0)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class BookingOut(BaseModel):
    id: int
    apartment_id: int
    guest_name: str
    guest_email: str
    guest_phone: Optional[str] = None
    check_in: date
    check_out: date
    total_guests: int
    total_price: float
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingApartmentInfo(BaseModel):
    title: str
    address: str

    model_config = {"from_attributes": True}


class BookingWithApartment(BookingOut):
    """Admin reservations list row."""

    apartment: Optional[BookingApartmentInfo] = None


class EmailResults(BaseModel):
    owner_sent: bool = False
    guest_sent: bool = False
