"""
Destination Resolver.

Turns a free-text destination and/or exact city/region ids into predicate
groups over the package's destination-matchable set:
    {representative city} U {itinerary location cities}
"""

from typing import List, Optional
import logging

from tour_search.services.predicates import AnyOf, Condition, any_of, eq

logger = logging.getLogger(__name__)

# Free-text destination is matched against these four paths.
DESTINATION_TEXT_FIELDS = (
    "representative_city.name",
    "representative_city.region.name",
    "locations.city.name",
    "locations.city.region.name",
)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def destination_text_group(destination: str) -> AnyOf:
    """Case-insensitive substring across city and region names (4-way OR)."""
    return any_of(*(Condition(field, "icontains", destination) for field in DESTINATION_TEXT_FIELDS))


def city_group(city_id: int) -> AnyOf:
    return any_of(
        eq("representative_city_id", city_id),
        eq("locations.city_id", city_id),
    )


def region_group(region_id: int) -> AnyOf:
    return any_of(
        eq("representative_city.region_id", region_id),
        eq("locations.city.region_id", region_id),
    )


def resolve_destination(
    destination: Optional[str] = None,
    city_id: Optional[int] = None,
    region_id: Optional[int] = None,
) -> List[AnyOf]:
    """
    Build one AnyOf group per destination criterion.

    Exact ids short-circuit the free-text destination. The caller conjoins
    the returned groups; they must never be merged into a single OR.
    """
    groups: List[AnyOf] = []
    if city_id is not None:
        groups.append(city_group(city_id))
    if region_id is not None:
        groups.append(region_group(region_id))

    text = _clean(destination)
    if text and not groups:
        groups.append(destination_text_group(text))
    elif text:
        logger.debug(f"Destination text '{text}' ignored: exact city/region id supplied")

    return groups
