# Pydantic models for the records the query gateway returns and the search options it accepts.
# Records are validated from result-row mappings so dates and aggregates have the same types on every backend.
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


# Users
# A row of the users table as persisted by the store
class UserRecord(BaseModel):
    id: int
    name: str
    email: str
    password: str

    model_config = ConfigDict(from_attributes=True)


# Properties
# A row of the properties table; cost_per_night is in cents
class PropertyRecord(BaseModel):
    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    thumbnail_photo_url: Optional[str] = None
    cover_photo_url: Optional[str] = None
    cost_per_night: int
    parking_spaces: int = 0
    number_of_bathrooms: int = 0
    number_of_bedrooms: int = 0
    country: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    post_code: Optional[str] = None
    active: bool = True

    model_config = ConfigDict(from_attributes=True)


# Search result: property attributes plus the store-computed average rating
class PropertyListing(PropertyRecord):
    average_rating: Optional[float] = None


# Reservations
# A guest reservation enriched with its property's attributes.
# `id` is the property id; the reservation's own id is `reservation_id`.
class ReservationRecord(PropertyRecord):
    reservation_id: int
    guest_id: int
    start_date: date
    end_date: date
    average_rating: Optional[float] = None


# Search options
# Optional filters for the property search. Prices are in major currency units (dollars).
class PropertySearchOptions(BaseModel):
    city: Optional[str] = None
    owner_id: Optional[int] = None
    minimum_price_per_night: Optional[Decimal] = None
    maximum_price_per_night: Optional[Decimal] = None
    minimum_rating: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    # Query strings deliver "" for untouched form fields; treat them as absent
    @field_validator(
        "city",
        "owner_id",
        "minimum_price_per_night",
        "maximum_price_per_night",
        "minimum_rating",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


def to_minor_units(amount: Union[Decimal, int, float]) -> int:
    """Convert a major-unit amount to integer cents, rounding half up (19.99 -> 1999)."""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
