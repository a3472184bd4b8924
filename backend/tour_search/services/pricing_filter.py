"""
Price & Validity Post-Filter.

Runs in memory over packages whose active pricing options were eagerly
loaded. A package qualifies when:
  - price requested: SOME active option (in currency_id, if given) has
    min_price <= amount <= max_price
  - dates requested: SOME active option's validity window overlaps
    [start_date, end_date]; a missing valid_from / valid_to is unbounded
Both checks may be satisfied by different options.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class PriceValidityFilter:
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    currency_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_criteria(cls, criteria) -> "PriceValidityFilter":
        return cls(
            min_price=_to_decimal(criteria.min_price),
            max_price=_to_decimal(criteria.max_price),
            currency_id=criteria.currency_id,
            start_date=to_utc(criteria.start_date),
            end_date=to_utc(criteria.end_date),
        )

    @property
    def price_requested(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    @property
    def dates_requested(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    @property
    def is_requested(self) -> bool:
        return self.price_requested or self.dates_requested

    # -- per-option checks --------------------------------------------------

    def option_in_price_range(self, option) -> bool:
        if self.currency_id is not None and option.currency_id != self.currency_id:
            return False
        amount = _to_decimal(option.amount)
        if amount is None:
            return False
        if self.min_price is not None and amount < self.min_price:
            return False
        if self.max_price is not None and amount > self.max_price:
            return False
        return True

    def option_valid_in_window(self, option) -> bool:
        valid_from = to_utc(option.valid_from)
        valid_to = to_utc(option.valid_to)
        if self.start_date is not None and valid_to is not None and valid_to < self.start_date:
            return False
        if self.end_date is not None and valid_from is not None and valid_from > self.end_date:
            return False
        return True

    # -- per-package -----------------------------------------------------------

    def matches(self, package) -> bool:
        options = [o for o in package.pricing_options if o.is_active]
        if self.price_requested and not any(self.option_in_price_range(o) for o in options):
            return False
        if self.dates_requested and not any(self.option_valid_in_window(o) for o in options):
            return False
        return True

    def apply(self, packages: Iterable) -> List:
        """Keep packages passing every requested check, preserving order."""
        packages = list(packages)
        if not self.is_requested:
            return packages
        kept = [p for p in packages if self.matches(p)]
        logger.debug(f"Price/validity post-filter kept {len(kept)} of {len(packages)} packages")
        return kept
