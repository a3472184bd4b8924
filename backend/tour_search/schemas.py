"""
Request / response models for package search.

Wire format is camelCase (cityId, radiusKm, totalPages, ...); Python code
uses snake_case field names. Criteria models own all input validation so
that nothing reaches the store before it has been checked.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tour_search.core.config import settings
from tour_search.core.exceptions import InvalidSearchInput
from tour_search.db.models import DifficultyLevel, MediaType, PackageType
from tour_search.services.pricing_filter import to_utc

# Store integer columns are 32-bit; offsets must fit a signed 64-bit integer.
MIN_ID, MAX_ID = -(2**31), 2**31 - 1
MAX_PAGE = (2**63 - 1) // settings.search_max_limit

DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        allow_inf_nan=False,
    )


class SortKey(str, Enum):
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    NAME = "name"
    RATING = "rating"
    DURATION = "duration"
    DIFFICULTY = "difficulty"
    LOWEST_PRICE = "lowestPrice"  # minimum active pricing amount


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ---------------------------------------------------------------------------
# Request criteria
# ---------------------------------------------------------------------------

class PagedCriteria(CamelModel):
    type: Optional[PackageType] = None
    difficulty: Optional[DifficultyLevel] = None
    is_active: bool = True
    page: int = Field(1, ge=1, le=MAX_PAGE)
    limit: int = Field(settings.search_default_limit, ge=1, le=settings.search_max_limit)

    @field_validator("is_active", mode="before")
    @classmethod
    def default_active(cls, v):
        return True if v is None else v

    @field_validator("page", mode="before")
    @classmethod
    def default_page(cls, v):
        return 1 if v is None else v

    @field_validator("limit", mode="before")
    @classmethod
    def default_limit(cls, v):
        return settings.search_default_limit if v is None else v


class SearchCriteria(PagedCriteria):
    """General search (also used by the plain listing endpoint)."""

    destination: Optional[str] = Field(None, max_length=200)
    city_id: Optional[int] = Field(None, ge=MIN_ID, le=MAX_ID)
    region_id: Optional[int] = Field(None, ge=MIN_ID, le=MAX_ID)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    travelers: Optional[int] = Field(None, ge=1, le=MAX_ID)
    min_participants: Optional[int] = Field(None, ge=1, le=MAX_ID)
    max_participants: Optional[int] = Field(None, ge=1, le=MAX_ID)
    company_id: Optional[int] = Field(None, ge=MIN_ID, le=MAX_ID)
    language_id: Optional[int] = Field(None, ge=MIN_ID, le=MAX_ID)
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    currency_id: Optional[int] = Field(None, ge=MIN_ID, le=MAX_ID)
    min_age: Optional[int] = Field(None, ge=0, le=MAX_ID)
    max_age: Optional[int] = Field(None, ge=0, le=MAX_ID)
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    duration: Optional[str] = Field(None, max_length=60)
    has_hotel_pickup: Optional[bool] = None
    search: Optional[str] = Field(None, max_length=200)
    sort_by: SortKey = SortKey.CREATED_AT
    order: SortOrder = SortOrder.DESC

    @field_validator("destination", "search", "duration", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("end_date", mode="before")
    @classmethod
    def date_only_end_is_inclusive(cls, v):
        """A bare calendar date as endDate covers that whole day (UTC)."""
        if isinstance(v, str) and DATE_ONLY.match(v.strip()):
            v = date.fromisoformat(v.strip())
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.max, tzinfo=timezone.utc)
        return v

    @field_validator("sort_by", mode="before")
    @classmethod
    def default_sort(cls, v):
        return SortKey.CREATED_AT if v is None else v

    @field_validator("order", mode="before")
    @classmethod
    def default_order(cls, v):
        if v is None:
            return SortOrder.DESC
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_ranges(self):
        if self.start_date and self.end_date and to_utc(self.start_date) > to_utc(self.end_date):
            raise ValueError("startDate must be on or before endDate")
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice must be less than or equal to maxPrice")
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("minAge must be less than or equal to maxAge")
        return self

    def applied_filters(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"page", "limit"})


class NearbyCriteria(PagedCriteria):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(settings.nearby_default_radius_km, ge=settings.nearby_min_radius_km)

    @field_validator("radius_km", mode="before")
    @classmethod
    def default_radius(cls, v):
        return settings.nearby_default_radius_km if v is None else v


class CityCriteria(PagedCriteria):
    city_id: int = Field(..., ge=MIN_ID, le=MAX_ID)


def parse_criteria(model: type, **values):
    """Build a criteria model, turning validation failures into InvalidSearchInput."""
    try:
        return model(**values)
    except ValidationError as e:
        reasons = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
            msg = err.get("msg", "invalid value")
            reasons.append(f"{loc}: {msg}" if loc else msg)
        raise InvalidSearchInput("Invalid search criteria", reasons) from e


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class CompanySummary(CamelModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    rating: Optional[float] = None


class RegionSummary(CamelModel):
    id: int
    name: str


class CitySummary(CamelModel):
    id: int
    name: str
    region: Optional[RegionSummary] = None


class PricingOptionOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    currency_id: int
    amount: Decimal
    per_person: bool
    min_participants: Optional[int] = None
    max_participants: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


class MediaOut(CamelModel):
    id: int
    type: MediaType
    url: str
    caption: Optional[str] = None


class PackageSummary(CamelModel):
    id: int
    company_id: int
    name: str
    description: Optional[str] = None
    type: PackageType
    difficulty: Optional[DifficultyLevel] = None
    is_active: bool
    rating: float
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_participants: Optional[int] = None
    max_participants: Optional[int] = None
    duration: Optional[str] = None
    meeting_point: Optional[str] = None
    meeting_latitude: Optional[float] = None
    meeting_longitude: Optional[float] = None
    representative_city_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    company: Optional[CompanySummary] = None
    pricing_options: List[PricingOptionOut] = []
    media: List[MediaOut] = []
    representative_city: Optional[CitySummary] = None
    distance_km: Optional[float] = None


class Center(CamelModel):
    lat: float
    lng: float


class SearchMeta(CamelModel):
    total: int
    total_results: Optional[int] = None
    page: int
    limit: int
    total_pages: int
    filters: Optional[Dict[str, Any]] = None
    center: Optional[Center] = None
    radius_km: Optional[float] = None


class PackageSearchResponse(CamelModel):
    data: List[PackageSummary]
    meta: SearchMeta
