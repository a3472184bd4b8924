"""
Database models -- SQLAlchemy ORM definitions.
Catalog of tourist packages, their pricing options and their geographic
associations (representative city + itinerary locations).
Compatible with both PostgreSQL and SQLite.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageType(str, enum.Enum):
    GROUP = "GROUP"
    PRIVATE = "PRIVATE"
    SELF_GUIDED = "SELF_GUIDED"


class DifficultyLevel(str, enum.Enum):
    EASY = "EASY"
    MODERATE = "MODERATE"
    CHALLENGING = "CHALLENGING"
    HARD = "HARD"


class MediaType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


# ---------------------------------------------------------------------------
# Geography (read-only for the search core)
# ---------------------------------------------------------------------------

class Country(Base):
    __tablename__ = "country"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False, unique=True)
    code = Column(String(3), index=True)

    regions = relationship("Region", back_populates="country")


class Region(Base):
    __tablename__ = "region"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False, index=True)
    country_id = Column(Integer, ForeignKey("country.id"), nullable=False, index=True)

    country = relationship("Country", back_populates="regions")
    cities = relationship("City", back_populates="region")


class City(Base):
    __tablename__ = "city"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False, index=True)
    region_id = Column(Integer, ForeignKey("region.id"), nullable=False, index=True)

    region = relationship("Region", back_populates="cities")


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

class Currency(Base):
    __tablename__ = "currency"

    id = Column(Integer, primary_key=True)
    code = Column(String(3), nullable=False, unique=True)
    symbol = Column(String(8))


class Language(Base):
    __tablename__ = "language"

    id = Column(Integer, primary_key=True)
    code = Column(String(8), nullable=False, unique=True)
    name = Column(String(60), nullable=False)


class TourismCompany(Base):
    __tablename__ = "tourism_company"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    logo_url = Column(Text)
    rating = Column(Float)

    packages = relationship("TouristPackage", back_populates="company")


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

class TouristPackage(Base):
    """
    A sellable tour product.
    Destination-matchable cities = representative_city + locations[].city.
    """
    __tablename__ = "tourist_package"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("tourism_company.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    type = Column(Enum(PackageType), nullable=False, default=PackageType.GROUP, index=True)
    difficulty = Column(Enum(DifficultyLevel), index=True)
    language_id = Column(Integer, ForeignKey("language.id"), index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    rating = Column(Float, nullable=False, default=0)
    min_age = Column(Integer)
    max_age = Column(Integer)
    min_participants = Column(Integer)
    max_participants = Column(Integer)
    duration = Column(String(60), index=True)
    meeting_point = Column(Text)
    meeting_latitude = Column(Float, index=True)
    meeting_longitude = Column(Float, index=True)
    representative_city_id = Column(Integer, ForeignKey("city.id"), index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    company = relationship("TourismCompany", back_populates="packages")
    language = relationship("Language")
    representative_city = relationship("City")
    locations = relationship(
        "PackageLocation",
        back_populates="package",
        order_by="PackageLocation.order",
        cascade="all, delete-orphan",
    )
    pricing_options = relationship(
        "PricingOption",
        back_populates="package",
        order_by=lambda: [PricingOption.amount, PricingOption.id],
        cascade="all, delete-orphan",
    )
    media = relationship(
        "Media",
        back_populates="package",
        order_by=lambda: [Media.order, Media.id],
        cascade="all, delete-orphan",
    )
    included_items = relationship(
        "PackageIncludedItem",
        back_populates="package",
        order_by="PackageIncludedItem.order",
        cascade="all, delete-orphan",
    )
    pickup_detail = relationship(
        "PickupDetail",
        back_populates="package",
        uselist=False,
        cascade="all, delete-orphan",
    )


class PackageIncludedItem(Base):
    __tablename__ = "package_included_item"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("tourist_package.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    package = relationship("TouristPackage", back_populates="included_items")


class PricingOption(Base):
    """
    Purchasable price/capacity variant of a package.
    valid_from / valid_to are optional; a missing bound means unbounded.
    """
    __tablename__ = "pricing_option"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("tourist_package.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text)
    currency_id = Column(Integer, ForeignKey("currency.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    per_person = Column(Boolean, nullable=False, default=True)
    min_participants = Column(Integer)
    max_participants = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    valid_from = Column(DateTime(timezone=True))
    valid_to = Column(DateTime(timezone=True))

    package = relationship("TouristPackage", back_populates="pricing_options")
    currency = relationship("Currency")


class PackageLocation(Base):
    """Itinerary stop: a city visited by the package (distinct from the representative city)."""
    __tablename__ = "package_location"
    __table_args__ = (UniqueConstraint("package_id", "city_id", name="uq_package_location"),)

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("tourist_package.id", ondelete="CASCADE"), nullable=False, index=True)
    city_id = Column(Integer, ForeignKey("city.id"), nullable=False, index=True)
    order = Column(Integer, nullable=False, default=0)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    package = relationship("TouristPackage", back_populates="locations")
    city = relationship("City")


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("tourist_package.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(MediaType), nullable=False, default=MediaType.IMAGE)
    url = Column(Text, nullable=False)
    caption = Column(Text)
    order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)

    package = relationship("TouristPackage", back_populates="media")


class PickupDetail(Base):
    __tablename__ = "pickup_detail"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("tourist_package.id", ondelete="CASCADE"), nullable=False, unique=True)
    is_hotel_pickup_available = Column(Boolean, nullable=False, default=False)
    pickup_radius_km = Column(Float)
    pickup_start_time = Column(String(5))
    pickup_end_time = Column(String(5))
    instructions = Column(Text)

    package = relationship("TouristPackage", back_populates="pickup_detail")
