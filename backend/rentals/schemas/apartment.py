# rentals/schemas/apartment.py
from datetime import date, datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, model_validator


class Amenity(str, Enum):
    """
    Boolean characteristics a guest can filter on.
    Numeric ones (bedrooms, bathrooms) are not filterable.
    """

    WIFI = "wifi"
    KITCHEN = "kitchen"
    AIR_CONDITIONING = "air_conditioning"
    PARKING = "parking"
    POOL = "pool"
    BALCONY = "balcony"
    TERRACE = "terrace"
    GARDEN = "garden"
    BBQ = "bbq"
    WASHING_MACHINE = "washing_machine"
    MOUNTAIN_VIEW = "mountain_view"
    HOT_WATER = "hot_water"
    HEATING = "heating"
    COFFEE_MAKER = "coffee_maker"
    MICROWAVE = "microwave"
    OVEN = "oven"
    REFRIGERATOR = "refrigerator"
    IRON = "iron"
    HAIR_DRYER = "hair_dryer"
    TV = "tv"
    FIRE_EXTINGUISHER = "fire_extinguisher"
    CRIB = "crib"
    BLACKOUT_CURTAINS = "blackout_curtains"
    BIDET = "bidet"
    DISHWASHER = "dishwasher"
    SINGLE_FLOOR = "single_floor"
    LONG_TERM_AVAILABLE = "long_term_available"
    CLEANING_SERVICE = "cleaning_service"


class Characteristics(BaseModel):
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)

    wifi: Optional[bool] = None
    kitchen: Optional[bool] = None
    air_conditioning: Optional[bool] = None
    parking: Optional[bool] = None
    pool: Optional[bool] = None
    balcony: Optional[bool] = None
    terrace: Optional[bool] = None
    garden: Optional[bool] = None
    bbq: Optional[bool] = None
    washing_machine: Optional[bool] = None
    mountain_view: Optional[bool] = None
    hot_water: Optional[bool] = None
    heating: Optional[bool] = None
    coffee_maker: Optional[bool] = None
    microwave: Optional[bool] = None
    oven: Optional[bool] = None
    refrigerator: Optional[bool] = None
    iron: Optional[bool] = None
    hair_dryer: Optional[bool] = None
    tv: Optional[bool] = None
    fire_extinguisher: Optional[bool] = None
    crib: Optional[bool] = None
    blackout_curtains: Optional[bool] = None
    bidet: Optional[bool] = None
    dishwasher: Optional[bool] = None
    single_floor: Optional[bool] = None
    long_term_available: Optional[bool] = None
    cleaning_service: Optional[bool] = None

    # unknown amenity keys are rejected
    model_config = {"extra": "forbid", "from_attributes": True}

    def to_db(self) -> dict:
        return self.model_dump(exclude_none=True)


class StoredCharacteristics(Characteristics):
    """Read side: keys from older rows that are no longer amenities are dropped."""

    model_config = {"extra": "ignore", "from_attributes": True}


def _check_principal_index(images: List[str], index: int) -> None:
    if images and not 0 <= index < len(images):
        raise ValueError("principal_image_index must point into images")


class ApartmentOut(BaseModel):
    id: int
    title: str
    description: str
    address: str
    price_per_night: float
    max_guests: int
    characteristics: StoredCharacteristics
    images: List[str]
    principal_image_index: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_maps_url: Optional[str] = None
    contact_email: str
    contact_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApartmentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    address: str = Field(..., min_length=1)
    price_per_night: float = Field(..., gt=0)
    max_guests: int = Field(1, ge=1)
    characteristics: Characteristics = Characteristics()
    images: List[str] = []
    principal_image_index: int = 0
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    google_maps_url: Optional[str] = None
    contact_email: EmailStr
    contact_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def principal_image_in_range(self):
        _check_principal_index(self.images, self.principal_image_index)
        return self


class ApartmentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    price_per_night: Optional[float] = Field(None, gt=0)
    max_guests: Optional[int] = Field(None, ge=1)
    characteristics: Optional[Characteristics] = None
    images: Optional[List[str]] = None
    principal_image_index: Optional[int] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    google_maps_url: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    is_active: Optional[bool] = None


class SearchFilters(BaseModel):
    """Query for the public search; both dates are needed for date filtering."""

    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = Field(1, ge=1)
    amenities: List[Amenity] = []


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class ApartmentDetail(ApartmentOut):
    coordinates: Optional[Coordinates] = None
    map_url: Optional[str] = None
    whatsapp_url: str = ""


class Quote(BaseModel):
    apartment_id: int
    check_in: date
    check_out: date
    nights: int
    price_per_night: float
    total_price: float
