"""
Demo catalog: a handful of Peruvian and Chilean packages with pricing,
itinerary locations, pickup details and media.

Used by scripts/seed_sqlite.py and by the test-suite.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict
import logging

from sqlalchemy.orm import Session

from tour_search.db.models import (
    City,
    Country,
    Currency,
    DifficultyLevel,
    Language,
    Media,
    PackageIncludedItem,
    PackageLocation,
    PackageType,
    PickupDetail,
    PricingOption,
    Region,
    TourismCompany,
    TouristPackage,
)

logger = logging.getLogger(__name__)


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def seed_demo_catalog(session: Session) -> Dict[str, object]:
    """
    Insert the demo catalog and commit. Returns the created reference rows
    keyed by a short name so callers can look up ids.
    """
    peru = Country(name="Peru", code="PE")
    chile = Country(name="Chile", code="CL")
    cusco_region = Region(name="Cusco", country=peru)
    lima_region = Region(name="Lima", country=peru)
    santiago_region = Region(name="Region Metropolitana", country=chile)

    cusco = City(name="Cusco", region=cusco_region)
    aguas_calientes = City(name="Aguas Calientes", region=cusco_region)
    ollantaytambo = City(name="Ollantaytambo", region=cusco_region)
    lima = City(name="Lima", region=lima_region)
    santiago = City(name="Santiago", region=santiago_region)

    usd = Currency(code="USD", symbol="$")
    pen = Currency(code="PEN", symbol="S/")
    clp = Currency(code="CLP", symbol="$")
    es = Language(code="es", name="Spanish")
    en = Language(code="en", name="English")

    andes = TourismCompany(name="Andes Explorer", logo_url="https://example.com/andes.png", rating=4.7)
    pacific = TourismCompany(name="Pacific Coast Tours", rating=4.2)

    session.add_all([
        peru, chile, cusco_region, lima_region, santiago_region,
        cusco, aguas_calientes, ollantaytambo, lima, santiago,
        usd, pen, clp, es, en, andes, pacific,
    ])
    session.flush()

    machu_picchu = TouristPackage(
        company=andes,
        name="Machu Picchu Full Day",
        description="Train to Aguas Calientes and guided visit of the citadel.",
        type=PackageType.GROUP,
        difficulty=DifficultyLevel.MODERATE,
        language_id=es.id,
        rating=4.8,
        min_age=6,
        min_participants=2,
        max_participants=16,
        duration="1D",
        meeting_point="Plaza de Armas, Cusco",
        meeting_latitude=-13.5167,
        meeting_longitude=-71.978,
        representative_city=cusco,
        locations=[
            PackageLocation(city=cusco, order=1, notes="Start and main visit"),
            PackageLocation(city=aguas_calientes, order=2, notes="Bus to the citadel"),
        ],
        pricing_options=[
            PricingOption(name="Standard", currency=pen, amount=Decimal("450.00"), per_person=True),
            PricingOption(
                name="High season",
                currency=usd,
                amount=Decimal("180.00"),
                valid_from=_utc(2025, 6, 1),
                valid_to=_utc(2025, 8, 31),
            ),
        ],
        included_items=[
            PackageIncludedItem(label="Train tickets", order=1),
            PackageIncludedItem(label="Entrance ticket", order=2),
        ],
        media=[Media(url="https://example.com/mapi.jpg", is_primary=True)],
        pickup_detail=PickupDetail(is_hotel_pickup_available=True, pickup_radius_km=5),
    )

    sacred_valley = TouristPackage(
        company=andes,
        name="Sacred Valley Explorer",
        description="Pisac market, Urubamba and Ollantaytambo fortress.",
        type=PackageType.PRIVATE,
        difficulty=DifficultyLevel.EASY,
        language_id=en.id,
        rating=4.5,
        min_participants=1,
        max_participants=8,
        duration="2D1N",
        meeting_latitude=-13.5281,
        meeting_longitude=-71.944,
        representative_city=ollantaytambo,
        locations=[
            PackageLocation(city=cusco, order=1),
            PackageLocation(city=ollantaytambo, order=2),
        ],
        pricing_options=[
            PricingOption(name="Private car", currency=usd, amount=Decimal("320.00")),
        ],
        media=[Media(url="https://example.com/valley.jpg", is_primary=True)],
    )

    lima_food = TouristPackage(
        company=pacific,
        name="Lima Food Walk",
        description="Ceviche and pisco tasting in Barranco and Miraflores.",
        type=PackageType.GROUP,
        difficulty=DifficultyLevel.EASY,
        language_id=en.id,
        rating=4.3,
        min_age=18,
        duration="4h",
        meeting_latitude=-12.1196,
        meeting_longitude=-77.0365,
        representative_city=lima,
        pricing_options=[
            PricingOption(name="Walk", currency=pen, amount=Decimal("210.00")),
        ],
        included_items=[PackageIncludedItem(label="Pisco tasting", order=1)],
        pickup_detail=PickupDetail(is_hotel_pickup_available=False),
    )

    santiago_wine = TouristPackage(
        company=pacific,
        name="Maipo Valley Wineries",
        description="Two wineries south of Santiago.",
        type=PackageType.SELF_GUIDED,
        difficulty=DifficultyLevel.EASY,
        rating=4.0,
        duration="6h",
        representative_city=santiago,
        pricing_options=[
            PricingOption(name="Tasting", currency=clp, amount=Decimal("65000.00")),
        ],
    )

    session.add_all([machu_picchu, sacred_valley, lima_food, santiago_wine])
    session.commit()
    logger.info("Demo catalog seeded: 4 packages")

    return {
        "cusco": cusco,
        "aguas_calientes": aguas_calientes,
        "ollantaytambo": ollantaytambo,
        "lima": lima,
        "santiago": santiago,
        "cusco_region": cusco_region,
        "usd": usd,
        "pen": pen,
        "andes": andes,
        "pacific": pacific,
        "machu_picchu": machu_picchu,
        "sacred_valley": sacred_valley,
        "lima_food": lima_food,
        "santiago_wine": santiago_wine,
    }
