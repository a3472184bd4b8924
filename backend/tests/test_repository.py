"""
Store-backed search: predicate compilation against SQLite.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from tour_search.core.exceptions import StoreUnavailableError
from tour_search.db.models import DifficultyLevel, PackageIncludedItem, PackageLocation, PickupDetail
from tour_search.db.repositories import TouristPackageRepository
from tour_search.schemas import SearchCriteria, SortKey, SortOrder
from tour_search.services.predicate_builder import build_search_plan


def _ids(session, **criteria):
    plan = build_search_plan(SearchCriteria(**criteria))
    return [p.id for p in TouristPackageRepository(session).find(plan)]


def _id_set(session, **criteria):
    return set(_ids(session, **criteria))


class TestDestinationMatching:
    """Destination text, city and region criteria"""

    @pytest.mark.parametrize("text", ["cusco", "Cusco", "CUSCO", " cus "])
    def test_case_insensitive_destination(self, db_session, catalog, text):
        expected = {catalog["machu_picchu"].id, catalog["sacred_valley"].id}
        assert _id_set(db_session, destination=text) == expected

    def test_itinerary_stop_matches(self, db_session, catalog):
        assert _id_set(db_session, destination="aguas") == {catalog["machu_picchu"].id}

    def test_region_name_matches(self, db_session, catalog):
        assert _id_set(db_session, destination="metropolitana") == {catalog["santiago_wine"].id}

    def test_city_id_matches_representative_or_location(self, db_session, catalog):
        cusco_id = catalog["cusco"].id
        assert _id_set(db_session, city_id=cusco_id) == {
            catalog["machu_picchu"].id,
            catalog["sacred_valley"].id,
        }

    def test_region_id(self, db_session, catalog):
        assert _id_set(db_session, region_id=catalog["cusco_region"].id) == {
            catalog["machu_picchu"].id,
            catalog["sacred_valley"].id,
        }

    def test_city_id_and_search_are_conjoined(self, db_session, catalog):
        ids = _id_set(db_session, city_id=catalog["cusco"].id, search="fortress")
        assert ids == {catalog["sacred_valley"].id}

    def test_city_id_overrides_destination_text(self, db_session, catalog):
        ids = _id_set(db_session, city_id=catalog["lima"].id, destination="cusco")
        assert ids == {catalog["lima_food"].id}

    def test_unknown_destination_is_empty(self, db_session, catalog):
        assert _ids(db_session, destination="atlantis") == []


class TestSimpleFilters:
    """Capacity, age, pickup and text filters"""

    @pytest.mark.parametrize("travelers,included", [(1, False), (2, True), (6, True), (10, True), (11, False)])
    def test_capacity_overlap(self, db_session, factory, travelers, included):
        package = factory.make(min_participants=2, max_participants=10)
        assert (package.id in _id_set(db_session, travelers=travelers)) is included

    def test_capacity_bounds_may_be_absent(self, db_session, factory):
        open_ended = factory.make()
        capped = factory.make(max_participants=4)
        assert _id_set(db_session, travelers=30) == {open_ended.id}
        assert capped.id in _id_set(db_session, travelers=3)

    def test_scenario_travelers_exceed_capacity(self, db_session, catalog):
        assert catalog["machu_picchu"].id not in _id_set(db_session, travelers=20)

    def test_age_bounds(self, db_session, factory):
        teens = factory.make(min_age=12, max_age=17)
        anyone = factory.make()
        assert _id_set(db_session, min_age=10) == {anyone.id}
        assert _id_set(db_session, min_age=12, max_age=17) == {teens.id, anyone.id}
        assert _id_set(db_session, max_age=30) == {anyone.id}

    def test_hotel_pickup(self, db_session, factory):
        with_pickup = factory.make(pickup_detail=PickupDetail(is_hotel_pickup_available=True))
        without = factory.make(pickup_detail=PickupDetail(is_hotel_pickup_available=False))
        no_detail = factory.make()
        assert _id_set(db_session, has_hotel_pickup=True) == {with_pickup.id}
        assert _id_set(db_session, has_hotel_pickup=False) == {without.id, no_detail.id}

    def test_search_text(self, db_session, factory):
        by_name = factory.make(name="Rainbow Mountain Trek")
        by_description = factory.make(description="Hike up to the RAINBOW ridge")
        by_item = factory.make(included_items=[PackageIncludedItem(label="Rainbow")])
        factory.make(included_items=[PackageIncludedItem(label="Rainbow mountain lunch")])
        assert _id_set(db_session, search="rainbow") == {by_name.id, by_description.id, by_item.id}

    def test_search_text_escapes_wildcards(self, db_session, factory):
        factory.make(name="Full day")
        percent = factory.make(name="50% off city walk")
        assert _id_set(db_session, search="%") == {percent.id}

    def test_type_rating_and_inactive(self, db_session, catalog):
        assert _id_set(db_session, type="PRIVATE") == {catalog["sacred_valley"].id}
        assert _id_set(db_session, min_rating=4.6) == {catalog["machu_picchu"].id}
        catalog["lima_food"].is_active = False
        db_session.commit()
        assert _id_set(db_session, is_active=False) == {catalog["lima_food"].id}


class TestOrdering:
    """Sort keys and tie-breaking"""

    def test_lowest_price_sort_puts_unpriced_last(self, db_session, factory):
        pricey = factory.make(pricing=[factory.option(300), factory.option(900)])
        cheap = factory.make(pricing=[factory.option(100)])
        unpriced = factory.make()
        ignored = factory.make(pricing=[factory.option(5, is_active=False), factory.option(500)])

        asc = _ids(db_session, sort_by=SortKey.LOWEST_PRICE, order=SortOrder.ASC)
        desc = _ids(db_session, sort_by=SortKey.LOWEST_PRICE, order=SortOrder.DESC)

        assert asc == [cheap.id, pricey.id, ignored.id, unpriced.id]
        assert desc == [ignored.id, pricey.id, cheap.id, unpriced.id]

    def test_name_sort_with_id_tie_breaker(self, db_session, factory):
        b = factory.make(name="B")
        a1 = factory.make(name="A")
        a2 = factory.make(name="A")
        assert _ids(db_session, sort_by=SortKey.NAME, order=SortOrder.ASC) == [a1.id, a2.id, b.id]

    def test_difficulty_sort_follows_level_order(self, db_session, factory):
        hard = factory.make(difficulty=DifficultyLevel.HARD)
        easy = factory.make(difficulty=DifficultyLevel.EASY)
        challenging = factory.make(difficulty=DifficultyLevel.CHALLENGING)
        moderate = factory.make(difficulty=DifficultyLevel.MODERATE)

        asc = _ids(db_session, sort_by=SortKey.DIFFICULTY, order=SortOrder.ASC)
        desc = _ids(db_session, sort_by=SortKey.DIFFICULTY, order=SortOrder.DESC)

        assert asc == [easy.id, moderate.id, challenging.id, hard.id]
        assert desc == [hard.id, challenging.id, moderate.id, easy.id]

    def test_only_active_options_are_loaded(self, db_session, factory):
        package = factory.make(pricing=[factory.option(5, is_active=False), factory.option(50)])
        db_session.expire_all()
        loaded = TouristPackageRepository(db_session).find(build_search_plan(SearchCriteria()))
        assert [o.amount for o in loaded[0].pricing_options] == [Decimal("50.00")]
        assert loaded[0].id == package.id


class TestStoreFailure:
    """Store errors are surfaced, never turned into empty results"""

    class BrokenSession:
        def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def test_find_raises_store_unavailable(self):
        repo = TouristPackageRepository(self.BrokenSession())
        with pytest.raises(StoreUnavailableError):
            repo.find(build_search_plan(SearchCriteria()))

    def test_count_raises_store_unavailable(self):
        repo = TouristPackageRepository(self.BrokenSession())
        with pytest.raises(StoreUnavailableError):
            repo.count(build_search_plan(SearchCriteria()))


class TestLocations:
    """Itinerary ordering survives loading"""

    def test_locations_keep_order(self, db_session, factory):
        second = factory.make_city("Second")
        package = factory.make(locations=[
            PackageLocation(city=second, order=2),
            PackageLocation(city=factory.city, order=1),
        ])
        db_session.expire_all()
        assert [loc.order for loc in package.locations] == [1, 2]
