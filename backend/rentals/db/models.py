# rentals/db/models.py

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Text,
    ForeignKey,
    Numeric,
    Boolean,
    Float,
    JSON,
)
from sqlalchemy.orm import relationship

from rentals.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # DB column name: password_hash
    # Python attribute: hashed_password
    hashed_password = Column("password_hash", String(255), nullable=False)

    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Apartment(Base):
    __tablename__ = "apartments"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    address = Column(String(255), nullable=False)

    price_per_night = Column(Numeric(10, 2), nullable=False)
    max_guests = Column(Integer, nullable=False, default=1, index=True)

    # amenity flags / counts, validated by schemas.apartment.Characteristics
    characteristics = Column(JSON, nullable=False, default=dict)

    # list[str] as JSON in DB
    images = Column(JSON, nullable=False, default=list)
    principal_image_index = Column(Integer, nullable=False, default=0)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    google_maps_url = Column(Text, nullable=True)

    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=True)
    whatsapp_number = Column(String(50), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    bookings = relationship(
        "Booking",
        back_populates="apartment",
        cascade="all,delete-orphan",
    )

    availability = relationship(
        "ApartmentAvailability",
        back_populates="apartment",
        cascade="all,delete-orphan",
    )


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    apartment_id = Column(
        Integer,
        ForeignKey("apartments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    guest_name = Column(String(255), nullable=False)
    guest_email = Column(String(255), nullable=False)
    guest_phone = Column(String(50), nullable=True)

    check_in = Column(Date, nullable=False, index=True)
    check_out = Column(Date, nullable=False, index=True)

    total_guests = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # "pending" | "confirmed" | "cancelled"
    status = Column(String(20), nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    apartment = relationship("Apartment", back_populates="bookings")


class ApartmentAvailability(Base):
    """
    Manual per-apartment override over a date range (owner blackout etc).
    Only rows with is_available=False block search results.
    """

    __tablename__ = "apartment_availability"

    id = Column(Integer, primary_key=True, index=True)

    apartment_id = Column(
        Integer,
        ForeignKey("apartments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    apartment = relationship("Apartment", back_populates="availability")
