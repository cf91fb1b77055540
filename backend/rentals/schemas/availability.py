# rentals/schemas/availability.py
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, model_validator


class AvailabilityCreate(BaseModel):
    start_date: date
    end_date: date
    is_available: bool = False
    notes: Optional[str] = None

    @model_validator(mode="after")
    def end_not_before_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AvailabilityOut(BaseModel):
    id: int
    apartment_id: int
    start_date: date
    end_date: date
    is_available: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
