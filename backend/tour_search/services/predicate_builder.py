"""
Predicate Builder.

Assembles every simple criterion plus the Destination Resolver's groups into
one conjunctive predicate tree, and pairs it with eager-load instructions and
a sort strategy (a QueryPlan) for the entity store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional
import logging

from tour_search.schemas import CityCriteria, NearbyCriteria, SearchCriteria, SortKey, SortOrder
from tour_search.services.destination_resolver import city_group, resolve_destination
from tour_search.services.geo import bounding_box
from tour_search.services.predicates import (
    AllOf,
    AnyOf,
    Condition,
    Not,
    all_of,
    any_of,
    describe,
    eq,
    is_null,
)

logger = logging.getLogger(__name__)


class Include(str, Enum):
    """Eager-load instructions understood by the repository."""
    COMPANY = "company"
    CHEAPEST_PRICING = "cheapest_pricing"      # active options, caller keeps the cheapest
    ALL_ACTIVE_PRICING = "all_active_pricing"
    PRIMARY_MEDIA = "primary_media"
    CITY_WITH_REGION = "city_with_region"


LIST_INCLUDES = frozenset({
    Include.COMPANY,
    Include.CHEAPEST_PRICING,
    Include.PRIMARY_MEDIA,
    Include.CITY_WITH_REGION,
})

NEARBY_INCLUDES = frozenset({
    Include.COMPANY,
    Include.ALL_ACTIVE_PRICING,
    Include.PRIMARY_MEDIA,
    Include.CITY_WITH_REGION,
})


@dataclass(frozen=True)
class Sort:
    key: SortKey = SortKey.CREATED_AT
    order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class QueryPlan:
    predicate: AllOf
    includes: FrozenSet[Include] = field(default_factory=lambda: LIST_INCLUDES)
    sort: Optional[Sort] = Sort()

    def describe(self) -> str:
        return describe(self.predicate)


# ---------------------------------------------------------------------------
# Criterion -> node helpers
# ---------------------------------------------------------------------------

def _lower_bound_or_absent(column: str, value) -> AnyOf:
    """Package bound is absent, or package bound <= value."""
    return any_of(is_null(column), Condition(column, "lte", value))


def _upper_bound_or_absent(column: str, value) -> AnyOf:
    """Package bound is absent, or package bound >= value."""
    return any_of(is_null(column), Condition(column, "gte", value))


def _age_groups(min_age, max_age):
    groups = []
    if min_age is not None:
        groups.append(_lower_bound_or_absent("min_age", min_age))
    if max_age is not None:
        groups.append(_upper_bound_or_absent("max_age", max_age))
    return groups


def _traveler_groups(travelers):
    if travelers is None:
        return []
    return [
        _lower_bound_or_absent("min_participants", travelers),
        _upper_bound_or_absent("max_participants", travelers),
    ]


def _hotel_pickup(has_hotel_pickup):
    if has_hotel_pickup is None:
        return None
    available = eq("pickup_detail.is_hotel_pickup_available", True)
    return available if has_hotel_pickup else Not(available)


def search_text_group(text: str) -> AnyOf:
    return any_of(
        Condition("name", "icontains", text),
        Condition("description", "icontains", text),
        Condition("included_items.label", "iequals", text),
    )


def _common_equalities(criteria) -> list:
    nodes = [eq("is_active", criteria.is_active)]
    if criteria.type is not None:
        nodes.append(eq("type", criteria.type))
    if criteria.difficulty is not None:
        nodes.append(eq("difficulty", criteria.difficulty))
    return nodes


# ---------------------------------------------------------------------------
# Plans per entry mode
# ---------------------------------------------------------------------------

def build_search_predicate(criteria: SearchCriteria) -> AllOf:
    nodes = _common_equalities(criteria)

    if criteria.company_id is not None:
        nodes.append(eq("company_id", criteria.company_id))
    if criteria.language_id is not None:
        nodes.append(eq("language_id", criteria.language_id))
    if criteria.duration is not None:
        nodes.append(eq("duration", criteria.duration))
    if criteria.min_rating is not None:
        nodes.append(Condition("rating", "gte", criteria.min_rating))

    nodes.extend(_age_groups(criteria.min_age, criteria.max_age))
    nodes.extend(_traveler_groups(criteria.travelers))

    # Explicit participant range filters, conjoined with the traveler overlap
    if criteria.min_participants is not None:
        nodes.append(Condition("min_participants", "gte", criteria.min_participants))
    if criteria.max_participants is not None:
        nodes.append(Condition("max_participants", "lte", criteria.max_participants))

    nodes.append(_hotel_pickup(criteria.has_hotel_pickup))

    if criteria.search:
        nodes.append(search_text_group(criteria.search))

    nodes.extend(resolve_destination(criteria.destination, criteria.city_id, criteria.region_id))

    return all_of(*nodes)


def build_search_plan(criteria: SearchCriteria) -> QueryPlan:
    plan = QueryPlan(
        predicate=build_search_predicate(criteria),
        includes=LIST_INCLUDES,
        sort=Sort(criteria.sort_by, criteria.order),
    )
    logger.debug(f"Search predicate: {plan.describe()}")
    return plan


def build_city_plan(criteria: CityCriteria) -> QueryPlan:
    predicate = all_of(*_common_equalities(criteria), city_group(criteria.city_id))
    return QueryPlan(predicate=predicate, includes=LIST_INCLUDES, sort=Sort())


def build_nearby_plan(criteria: NearbyCriteria) -> QueryPlan:
    """Bounding-box superset plus equality filters; distance ordering happens in memory."""
    box = bounding_box(criteria.lat, criteria.lng, criteria.radius_km)
    predicate = all_of(*_common_equalities(criteria), box.to_predicate())
    plan = QueryPlan(predicate=predicate, includes=NEARBY_INCLUDES, sort=None)
    logger.debug(f"Nearby predicate: {plan.describe()}")
    return plan
