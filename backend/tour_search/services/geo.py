"""
Geo Proximity Filter.

Two steps:
  1. bounding_box() -> cheap rectangular pre-filter pushed to the store
  2. rank_by_distance() -> exact haversine distance, authoritative radius
     check and deterministic ordering (distance asc, package id asc)
"""

from __future__ import annotations

from dataclasses import dataclass
from math import radians, sin, cos, atan2, sqrt, isfinite
from typing import Iterable, List

from tour_search.services.predicates import AllOf, Condition, all_of, any_of

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def spans_all_longitudes(self) -> bool:
        return self.max_lng - self.min_lng >= 360.0

    @property
    def covers_pole(self) -> bool:
        return self.max_lat >= 90.0 or self.min_lat <= -90.0

    def to_predicate(self) -> AllOf:
        """
        Range conditions on the meeting point. Range comparisons exclude NULL
        coordinates. A band crossing the antimeridian is split in two. When the
        circle reaches a pole every longitude is in range.
        """
        lat = Condition("meeting_latitude", "between", (self.min_lat, self.max_lat))
        if self.spans_all_longitudes or self.covers_pole:
            return all_of(lat, Condition("meeting_longitude", "is_null", False))
        if self.min_lng < -180.0:
            lng = any_of(
                Condition("meeting_longitude", "between", (-180.0, self.max_lng)),
                Condition("meeting_longitude", "between", (self.min_lng + 360.0, 180.0)),
            )
        elif self.max_lng > 180.0:
            lng = any_of(
                Condition("meeting_longitude", "between", (self.min_lng, 180.0)),
                Condition("meeting_longitude", "between", (-180.0, self.max_lng - 360.0)),
            )
        else:
            lng = Condition("meeting_longitude", "between", (self.min_lng, self.max_lng))
        return all_of(lat, lng)


def bounding_box(lat: float, lng: float, radius_km: float) -> BoundingBox:
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = cos(radians(lat))
    if not isfinite(cos_lat) or cos_lat == 0:
        cos_lat = 1.0
    lng_delta = radius_km / (KM_PER_DEGREE * abs(cos_lat))
    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lng=lng - lng_delta,
        max_lng=lng + lng_delta,
    )


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two lat/lon points."""
    phi1, phi2 = radians(lat1), radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lon2 - lon1)
    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(a), sqrt(1 - a))


@dataclass
class NearbyMatch:
    package: object
    distance_km: float


def rank_by_distance(
    candidates: Iterable,
    lat: float,
    lng: float,
    radius_km: float,
) -> List[NearbyMatch]:
    """
    Exact distance pass over bounding-box candidates.
    Packages without both meeting-point coordinates are dropped.
    """
    matches: List[NearbyMatch] = []
    for package in candidates:
        p_lat = package.meeting_latitude
        p_lng = package.meeting_longitude
        if p_lat is None or p_lng is None:
            continue
        distance = haversine_km(lat, lng, p_lat, p_lng)
        if distance <= radius_km:
            matches.append(NearbyMatch(package=package, distance_km=distance))

    matches.sort(key=lambda m: (m.distance_km, m.package.id))
    return matches
