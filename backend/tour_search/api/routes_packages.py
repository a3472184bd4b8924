"""
Tourist package discovery endpoints.

  GET /tourist-packages                  filtered listing
  GET /tourist-packages/search           general search (destination, price, dates, ...)
  GET /tourist-packages/nearby           proximity search around lat/lng
  GET /tourist-packages/by-city/{cityId} packages visiting a city
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.orm import Session
import logging

from tour_search.core.rate_limiting import LIST_LIMIT, NEARBY_LIMIT, SEARCH_LIMIT, limiter
from tour_search.db.database import get_db
from tour_search.db.models import DifficultyLevel, PackageType
from tour_search.schemas import (
    CityCriteria,
    NearbyCriteria,
    PackageSearchResponse,
    SearchCriteria,
    SortKey,
    SortOrder,
    parse_criteria,
)
from tour_search.services.package_search import PackageSearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tourist-packages", tags=["tourist-packages"])


@router.get("", response_model=PackageSearchResponse, response_model_exclude_none=True)
@limiter.limit(LIST_LIMIT)
def list_packages(
    request: Request,
    company_id: Optional[int] = Query(None, alias="companyId", description="Filter by company ID"),
    type: Optional[PackageType] = Query(None, description="Filter by package type"),
    difficulty: Optional[DifficultyLevel] = Query(None, description="Filter by difficulty level"),
    is_active: Optional[bool] = Query(True, alias="isActive", description="Filter by active status"),
    page: Optional[int] = Query(1, description="Page number"),
    limit: Optional[int] = Query(10, description="Items per page (max 100)"),
    sort_by: Optional[SortKey] = Query(SortKey.CREATED_AT, alias="sortBy", description="Sort field"),
    order: Optional[SortOrder] = Query(SortOrder.DESC, description="asc / desc"),
    db: Session = Depends(get_db),
):
    """List packages with simple filters and store-side pagination."""
    criteria = parse_criteria(
        SearchCriteria,
        company_id=company_id,
        type=type,
        difficulty=difficulty,
        is_active=is_active,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
    )
    return PackageSearchService(db).list_packages(criteria)


@router.get("/search", response_model=PackageSearchResponse, response_model_exclude_none=True)
@limiter.limit(SEARCH_LIMIT)
def search_packages(
    request: Request,
    destination: Optional[str] = Query(None, description="City or region name, case-insensitive partial match"),
    city_id: Optional[int] = Query(None, alias="cityId", description="Exact city ID"),
    region_id: Optional[int] = Query(None, alias="regionId", description="Exact region ID"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="ISO-8601 start of travel window"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO-8601 end of travel window; a bare date covers the whole day"),
    travelers: Optional[int] = Query(None, description="Number of travelers"),
    min_participants: Optional[int] = Query(None, alias="minParticipants"),
    max_participants: Optional[int] = Query(None, alias="maxParticipants"),
    type: Optional[PackageType] = Query(None, description="Filter by package type"),
    difficulty: Optional[DifficultyLevel] = Query(None, description="Filter by difficulty level"),
    company_id: Optional[int] = Query(None, alias="companyId"),
    language_id: Optional[int] = Query(None, alias="languageId"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", description="Lowest acceptable option amount"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", description="Highest acceptable option amount"),
    currency_id: Optional[int] = Query(None, alias="currencyId", description="Currency for price filters"),
    min_age: Optional[int] = Query(None, alias="minAge"),
    max_age: Optional[int] = Query(None, alias="maxAge"),
    min_rating: Optional[float] = Query(None, alias="minRating", description="0-5"),
    duration: Optional[str] = Query(None, description='Exact duration label, e.g. "2D1N"'),
    has_hotel_pickup: Optional[bool] = Query(None, alias="hasHotelPickup"),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    search: Optional[str] = Query(None, description="Text in name, description or included items"),
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(10, description="Items per page (max 100)"),
    sort_by: Optional[SortKey] = Query(SortKey.CREATED_AT, alias="sortBy"),
    order: Optional[SortOrder] = Query(SortOrder.DESC),
    db: Session = Depends(get_db),
):
    """
    Flexible package search.
    Relational filters run in the store; price range and pricing validity
    dates are applied afterwards over each package's active pricing options.
    """
    criteria = parse_criteria(
        SearchCriteria,
        destination=destination,
        city_id=city_id,
        region_id=region_id,
        start_date=start_date,
        end_date=end_date,
        travelers=travelers,
        min_participants=min_participants,
        max_participants=max_participants,
        type=type,
        difficulty=difficulty,
        company_id=company_id,
        language_id=language_id,
        min_price=min_price,
        max_price=max_price,
        currency_id=currency_id,
        min_age=min_age,
        max_age=max_age,
        min_rating=min_rating,
        duration=duration,
        has_hotel_pickup=has_hotel_pickup,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
    )
    return PackageSearchService(db).search(criteria)


@router.get("/nearby", response_model=PackageSearchResponse, response_model_exclude_none=True)
@limiter.limit(NEARBY_LIMIT)
def nearby_packages(
    request: Request,
    lat: float = Query(..., description="Latitude of the search center (WGS84)"),
    lng: float = Query(..., description="Longitude of the search center (WGS84)"),
    radius_km: Optional[float] = Query(None, alias="radiusKm", description="Search radius in km (default 10, min 0.1)"),
    type: Optional[PackageType] = Query(None),
    difficulty: Optional[DifficultyLevel] = Query(None),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(10, description="Items per page (max 100)"),
    db: Session = Depends(get_db),
):
    """Packages whose meeting point lies within radiusKm, nearest first."""
    criteria = parse_criteria(
        NearbyCriteria,
        lat=lat,
        lng=lng,
        radius_km=radius_km,
        type=type,
        difficulty=difficulty,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    return PackageSearchService(db).find_nearby(criteria)


@router.get("/by-city/{city_id}", response_model=PackageSearchResponse, response_model_exclude_none=True)
@limiter.limit(SEARCH_LIMIT)
def packages_by_city(
    request: Request,
    city_id: int = Path(..., description="City ID (representative city or itinerary stop)"),
    type: Optional[PackageType] = Query(None),
    difficulty: Optional[DifficultyLevel] = Query(None),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    page: Optional[int] = Query(1),
    limit: Optional[int] = Query(10, description="Items per page (max 100)"),
    db: Session = Depends(get_db),
):
    """Packages whose representative city or any itinerary stop is the given city."""
    criteria = parse_criteria(
        CityCriteria,
        city_id=city_id,
        type=type,
        difficulty=difficulty,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    return PackageSearchService(db).find_by_city(criteria)
