"""
Package Search Service
======================
Orchestrates the three entry modes over the entity store:

  search()        predicate builder -> store -> [price/date post-filter] -> page
  find_nearby()   bounding box -> store -> haversine rank -> page (in memory)
  find_by_city()  city group -> store (store-side pagination)
  list_packages() plain filtered listing (store-side pagination)

All validation happens before this layer (see schemas.parse_criteria).
Once a post-filter stage starts, only empty results are possible, not errors.
"""

from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from tour_search.core.monitoring import track_performance
from tour_search.db.models import TouristPackage
from tour_search.db.repositories import TouristPackageRepository
from tour_search.schemas import (
    Center,
    CityCriteria,
    CitySummary,
    CompanySummary,
    MediaOut,
    NearbyCriteria,
    PackageSearchResponse,
    PackageSummary,
    PricingOptionOut,
    SearchCriteria,
    SearchMeta,
)
from tour_search.services.geo import rank_by_distance
from tour_search.services.pagination import PageRequest, build_meta, paginate
from tour_search.services.predicate_builder import (
    Include,
    QueryPlan,
    build_city_plan,
    build_nearby_plan,
    build_search_plan,
)
from tour_search.services.pricing_filter import PriceValidityFilter

logger = logging.getLogger(__name__)


def package_summary(
    package: TouristPackage,
    includes=frozenset(),
    distance_km: Optional[float] = None,
) -> PackageSummary:
    """Serialize a loaded package according to the plan's eager-load set."""
    pricing: List[PricingOptionOut] = []
    if Include.CHEAPEST_PRICING in includes or Include.ALL_ACTIVE_PRICING in includes:
        active = [o for o in package.pricing_options if o.is_active]
        active.sort(key=lambda o: (o.amount, o.id))
        if Include.CHEAPEST_PRICING in includes:
            active = active[:1]
        pricing = [PricingOptionOut.model_validate(o) for o in active]

    media: List[MediaOut] = []
    if Include.PRIMARY_MEDIA in includes:
        media = [MediaOut.model_validate(m) for m in package.media if m.is_primary][:1]

    company = None
    if Include.COMPANY in includes and package.company is not None:
        company = CompanySummary.model_validate(package.company)

    city = None
    if Include.CITY_WITH_REGION in includes and package.representative_city is not None:
        city = CitySummary.model_validate(package.representative_city)

    return PackageSummary(
        id=package.id,
        company_id=package.company_id,
        name=package.name,
        description=package.description,
        type=package.type,
        difficulty=package.difficulty,
        is_active=package.is_active,
        rating=package.rating,
        min_age=package.min_age,
        max_age=package.max_age,
        min_participants=package.min_participants,
        max_participants=package.max_participants,
        duration=package.duration,
        meeting_point=package.meeting_point,
        meeting_latitude=package.meeting_latitude,
        meeting_longitude=package.meeting_longitude,
        representative_city_id=package.representative_city_id,
        created_at=package.created_at,
        updated_at=package.updated_at,
        company=company,
        pricing_options=pricing,
        media=media,
        representative_city=city,
        distance_km=distance_km,
    )


class PackageSearchService:
    """Read-only search over tourist packages. One instance per request."""

    def __init__(self, db: Session):
        self.repo = TouristPackageRepository(db)

    def _store_paginated(self, plan: QueryPlan, page: PageRequest, **meta_extra) -> PackageSearchResponse:
        total = self.repo.count(plan)
        packages = self.repo.find(plan, skip=page.skip, take=page.take)
        return PackageSearchResponse(
            data=[package_summary(p, plan.includes) for p in packages],
            meta=SearchMeta(**build_meta(total, page, **meta_extra)),
        )

    @track_performance("package search")
    def search(self, criteria: SearchCriteria) -> PackageSearchResponse:
        plan = build_search_plan(criteria)
        page = PageRequest(criteria.page, criteria.limit)
        post_filter = PriceValidityFilter.from_criteria(criteria)
        filters = criteria.applied_filters()

        if not post_filter.is_requested:
            return self._store_paginated(plan, page, filters=filters)

        # Post-filter owns pagination: fetch the whole ordered candidate set,
        # filter it, then slice.
        candidates = self.repo.find(plan)
        matched = post_filter.apply(candidates)
        logger.info(
            f"Search post-filter: {len(matched)} of {len(candidates)} candidates match price/date criteria"
        )
        return PackageSearchResponse(
            data=[package_summary(p, plan.includes) for p in paginate(matched, page)],
            meta=SearchMeta(**build_meta(
                len(matched), page, total_results=len(candidates), filters=filters,
            )),
        )

    @track_performance("package listing")
    def list_packages(self, criteria: SearchCriteria) -> PackageSearchResponse:
        plan = build_search_plan(criteria)
        return self._store_paginated(plan, PageRequest(criteria.page, criteria.limit))

    @track_performance("packages by city")
    def find_by_city(self, criteria: CityCriteria) -> PackageSearchResponse:
        plan = build_city_plan(criteria)
        return self._store_paginated(plan, PageRequest(criteria.page, criteria.limit))

    @track_performance("nearby search")
    def find_nearby(self, criteria: NearbyCriteria) -> PackageSearchResponse:
        plan = build_nearby_plan(criteria)
        page = PageRequest(criteria.page, criteria.limit)

        candidates = self.repo.find(plan)
        matches = rank_by_distance(candidates, criteria.lat, criteria.lng, criteria.radius_km)
        logger.info(
            f"Nearby search ({criteria.lat}, {criteria.lng}) r={criteria.radius_km}km: "
            f"{len(matches)} of {len(candidates)} bounding-box candidates within radius"
        )

        return PackageSearchResponse(
            data=[
                package_summary(m.package, plan.includes, distance_km=m.distance_km)
                for m in paginate(matches, page)
            ],
            meta=SearchMeta(**build_meta(
                len(matches),
                page,
                center=Center(lat=criteria.lat, lng=criteria.lng),
                radius_km=criteria.radius_km,
            )),
        )
