"""
Price range and pricing-validity post-filter.
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from tour_search.services.pricing_filter import PriceValidityFilter, to_utc

USD, PEN = 1, 2


def _option(amount, currency_id=USD, valid_from=None, valid_to=None, is_active=True):
    return SimpleNamespace(
        amount=Decimal(str(amount)),
        currency_id=currency_id,
        valid_from=valid_from,
        valid_to=valid_to,
        is_active=is_active,
    )


def _package(pkg_id, *options):
    return SimpleNamespace(id=pkg_id, pricing_options=list(options))


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestPriceRange:
    """Some active option must fall inside [min, max]"""

    def test_boundaries_are_inclusive(self):
        f = PriceValidityFilter(min_price=Decimal("100"), max_price=Decimal("200"))
        assert f.matches(_package(1, _option("100.00")))
        assert f.matches(_package(2, _option("200.00")))
        assert not f.matches(_package(3, _option("200.01")))
        assert not f.matches(_package(4, _option("99.99")))

    def test_open_ended_range(self):
        f = PriceValidityFilter(max_price=Decimal("50"))
        assert f.matches(_package(1, _option("10"), _option("900")))
        assert not f.matches(_package(2, _option("51")))

    def test_currency_restricts_candidates(self):
        f = PriceValidityFilter(min_price=Decimal("400"), max_price=Decimal("500"), currency_id=PEN)
        assert f.matches(_package(1, _option("450", PEN)))
        assert not f.matches(_package(2, _option("450", USD)))

    def test_currency_alone_does_not_filter(self):
        f = PriceValidityFilter(currency_id=PEN)
        assert not f.is_requested
        assert f.matches(_package(1, _option("450", USD)))

    def test_inactive_options_are_ignored(self):
        f = PriceValidityFilter(max_price=Decimal("100"))
        assert not f.matches(_package(1, _option("80", is_active=False), _option("300")))

    def test_package_without_options_is_excluded(self):
        f = PriceValidityFilter(min_price=Decimal("0"))
        assert not f.matches(_package(1))


class TestValidityWindow:
    """Some active option's validity window must overlap the requested dates"""

    def test_unbounded_option_always_overlaps(self):
        f = PriceValidityFilter(start_date=_utc(2025, 9, 1), end_date=_utc(2025, 9, 10))
        assert f.matches(_package(1, _option("10")))

    def test_window_ending_before_start_is_excluded(self):
        f = PriceValidityFilter(start_date=_utc(2025, 9, 1), end_date=_utc(2025, 9, 10))
        summer = _option("10", valid_from=_utc(2025, 6, 1), valid_to=_utc(2025, 8, 31))
        assert not f.matches(_package(1, summer))

    def test_window_starting_after_end_is_excluded(self):
        f = PriceValidityFilter(end_date=_utc(2025, 5, 1))
        summer = _option("10", valid_from=_utc(2025, 6, 1), valid_to=_utc(2025, 8, 31))
        assert not f.matches(_package(1, summer))

    def test_touching_boundaries_overlap(self):
        f = PriceValidityFilter(start_date=_utc(2025, 8, 31), end_date=_utc(2025, 9, 5))
        summer = _option("10", valid_from=_utc(2025, 6, 1), valid_to=_utc(2025, 8, 31))
        assert f.matches(_package(1, summer))

    def test_naive_datetimes_are_taken_as_utc(self):
        f = PriceValidityFilter(start_date=_utc(2025, 9, 1))
        naive = _option("10", valid_to=datetime(2025, 9, 1))
        assert f.matches(_package(1, naive))
        assert to_utc(datetime(2025, 9, 1)) == _utc(2025, 9, 1)

    def test_price_and_dates_may_use_different_options(self):
        f = PriceValidityFilter(
            max_price=Decimal("100"),
            start_date=_utc(2025, 12, 1),
            end_date=_utc(2025, 12, 5),
        )
        cheap_summer = _option("80", valid_from=_utc(2025, 6, 1), valid_to=_utc(2025, 8, 31))
        pricey_anytime = _option("300")
        assert f.matches(_package(1, cheap_summer, pricey_anytime))


class TestApply:
    """Filtering a candidate list"""

    def test_preserves_order(self):
        f = PriceValidityFilter(max_price=Decimal("100"))
        packages = [_package(5, _option("10")), _package(2, _option("500")), _package(3, _option("99"))]
        assert [p.id for p in f.apply(packages)] == [5, 3]

    def test_no_request_keeps_everything(self):
        packages = [_package(1), _package(2, _option("1"))]
        assert PriceValidityFilter().apply(packages) == packages
