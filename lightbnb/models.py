# SQLAlchemy table declarations for the LightBnB schema (users, properties, reservations, reviews).
# The query gateway issues raw parameterized SQL against these tables; the ORM classes exist so
# local SQLite databases and the test suite can create the schema with Base.metadata.create_all.
from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, SmallInteger, String, Text, true

from .db import Base


class User(Base):
    """Application user account. ``password`` holds an opaque credential hash."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)


class Property(Base):
    """Rental listing owned by a user. ``cost_per_night`` is stored in cents."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    thumbnail_photo_url = Column(String(255), nullable=False)
    cover_photo_url = Column(String(255), nullable=False)
    cost_per_night = Column(Integer, nullable=False)
    parking_spaces = Column(Integer, nullable=False)
    number_of_bathrooms = Column(Integer, nullable=False)
    number_of_bedrooms = Column(Integer, nullable=False)
    country = Column(String(255), nullable=False)
    street = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False, index=True)
    province = Column(String(255), nullable=False)
    post_code = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, server_default=true())

    # Search orders by price, so keep it indexed
    __table_args__ = (
        Index("ix_properties_cost_per_night", "cost_per_night"),
    )


class Reservation(Base):
    """A guest's stay at a property over [start_date, end_date]."""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    guest_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Guest listings are read in start-date order
    __table_args__ = (
        Index("ix_reservations_guest_start", "guest_id", "start_date"),
    )


class PropertyReview(Base):
    """Guest rating of a property, only ever read through AVG(rating)."""
    __tablename__ = "property_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    guest_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(SmallInteger, nullable=False)
    message = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_property_reviews_rating"),
    )
