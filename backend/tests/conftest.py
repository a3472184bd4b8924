"""
Shared fixtures: in-memory SQLite store, demo catalog, package factory and
a FastAPI TestClient.
"""

import os

# Must be set before tour_search.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient

from tour_search.db.database import SessionLocal, engine
from tour_search.db.models import (
    Base,
    City,
    Country,
    Currency,
    PricingOption,
    Region,
    TourismCompany,
    TouristPackage,
)
from tour_search.db.seed import seed_demo_catalog
from tour_search.main import app


@pytest.fixture
def db_session():
    """Fresh schema per test on the shared in-memory connection."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db_session):
    """Demo catalog (Cusco, Sacred Valley, Lima, Santiago)."""
    return seed_demo_catalog(db_session)


@pytest.fixture
def client(db_session):
    return TestClient(app)


class PackageFactory:
    """Creates committed packages with sensible defaults."""

    def __init__(self, session):
        self.session = session
        self._names = count(1)
        country = Country(name="Testland", code="TL")
        self.region = Region(name="Test Region", country=country)
        self.city = City(name="Testville", region=self.region)
        self.company = TourismCompany(name="Test Tours", rating=4.0)
        self.currency = Currency(code="USD", symbol="$")
        self.other_currency = Currency(code="EUR", symbol="E")
        session.add_all([country, self.region, self.city, self.company, self.currency, self.other_currency])
        session.commit()

    def make_city(self, name: str, region=None) -> City:
        city = City(name=name, region=region or self.region)
        self.session.add(city)
        self.session.commit()
        return city

    def option(self, amount, currency=None, **fields) -> PricingOption:
        return PricingOption(
            name=fields.pop("name", "Standard"),
            currency=currency or self.currency,
            amount=Decimal(str(amount)),
            **fields,
        )

    def make(self, pricing=(), **fields) -> TouristPackage:
        fields.setdefault("name", f"Package {next(self._names)}")
        fields.setdefault("company", self.company)
        package = TouristPackage(pricing_options=list(pricing), **fields)
        self.session.add(package)
        self.session.commit()
        return package


@pytest.fixture
def factory(db_session):
    return PackageFactory(db_session)
