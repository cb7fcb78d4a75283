"""Per-diem rate table and daily allowance calculator."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Iterable

from .errors import InvalidDateRangeError, RateTableError
from .models import DayType, PerDiemCalculation, PerDiemDayDetail, PerDiemRate

logger = logging.getLogger(__name__)

US_REGION = "US"
INTERNATIONAL_REGION = "INTL"

PER_DIEM_RATES: tuple[PerDiemRate, ...] = (
    # US
    PerDiemRate(
        location="New York City",
        aliases=("NYC", "New York", "Manhattan"),
        country="US",
        full_day=92.00,
        partial_day=69.00,
    ),
    PerDiemRate(
        location="San Francisco",
        aliases=("SF", "Bay Area"),
        country="US",
        full_day=92.00,
        partial_day=69.00,
    ),
    PerDiemRate(location="Boston", country="US", full_day=18.00, partial_day=18.00),
    PerDiemRate(
        location="All Other US",
        aliases=("US", "USA", "United States"),
        country=US_REGION,
        full_day=74.00,
        partial_day=56.00,
        is_default=True,
    ),
    # International
    PerDiemRate(
        location="Switzerland",
        aliases=("Zurich", "Geneva", "Basel"),
        country="CH",
        full_day=150.00,
        partial_day=112.50,
    ),
    PerDiemRate(
        location="London",
        aliases=("UK", "United Kingdom", "England"),
        country="GB",
        full_day=150.00,
        partial_day=112.50,
    ),
    PerDiemRate(
        location="Copenhagen",
        aliases=("Denmark",),
        country="DK",
        full_day=150.00,
        partial_day=112.50,
    ),
    PerDiemRate(
        location="Rest of World",
        aliases=("International", "Other"),
        country=INTERNATIONAL_REGION,
        full_day=100.00,
        partial_day=75.00,
        is_default=True,
    ),
)

_TWO_LETTER = re.compile(r"^[a-z]{2}$")
_US_HINTS = ("us", "united states", "america")


def _names(rate: PerDiemRate) -> list[str]:
    return [rate.location.lower(), *(alias.lower() for alias in rate.aliases)]


def _looks_domestic(query: str) -> bool:
    return any(hint in query for hint in _US_HINTS) or bool(_TWO_LETTER.match(query))


def _parse_date(value: str) -> date:
    try:
        return datetime.fromisoformat(value.strip()).date()
    except (AttributeError, ValueError) as exc:
        raise InvalidDateRangeError("Invalid date format. Use YYYY-MM-DD.") from exc


class PerDiemCalculator:
    """Resolves locations to rates and builds day-by-day allowances.

    Day policy: a one-day trip is a single ``first`` day at the partial rate.
    Longer trips pay the partial rate on the first and last day and the full
    rate for every day in between. The total is the sum of the per-day rates.
    """

    def __init__(self, rates: Iterable[PerDiemRate] = PER_DIEM_RATES) -> None:
        self._rates = tuple(rates)

    @property
    def rates(self) -> list[PerDiemRate]:
        return list(self._rates)

    def find_rate(self, location: str) -> PerDiemRate:
        query = (location or "").strip().lower()

        if query:
            for rate in self._rates:
                if query in _names(rate):
                    return rate

            for rate in self._rates:
                for name in _names(rate):
                    if query in name or name in query:
                        return rate

        region = US_REGION if query and _looks_domestic(query) else INTERNATIONAL_REGION
        fallback = self._default_for(region) or self._default_for(INTERNATIONAL_REGION)
        if fallback is None:
            raise RateTableError("per_diem_default_rate_missing")
        logger.debug("per_diem_rate_defaulted location=%r region=%s", location, region)
        return fallback

    def _default_for(self, region: str) -> PerDiemRate | None:
        for rate in self._rates:
            if rate.is_default and rate.country == region:
                return rate
        return None

    def calculate(self, start_date: str, end_date: str, location: str) -> PerDiemCalculation:
        start = _parse_date(start_date)
        end = _parse_date(end_date)
        if end < start:
            raise InvalidDateRangeError("End date must be after start date.")

        rate = self.find_rate(location)
        total_days = (end - start).days + 1

        breakdown: list[PerDiemDayDetail] = []
        for index in range(total_days):
            day_type: DayType
            if index == 0:
                day_type = "first"
            elif index == total_days - 1:
                day_type = "last"
            else:
                day_type = "full"
            breakdown.append(
                PerDiemDayDetail(
                    date=(start + timedelta(days=index)).isoformat(),
                    day_type=day_type,
                    rate=rate.full_day if day_type == "full" else rate.partial_day,
                    location=rate.location,
                )
            )

        full_days = sum(1 for day in breakdown if day.day_type == "full")
        return PerDiemCalculation(
            location=rate.location,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            full_days=full_days,
            partial_days=total_days - full_days,
            full_day_rate=rate.full_day,
            partial_day_rate=rate.partial_day,
            total_amount=round(sum(day.rate for day in breakdown), 2),
            breakdown=breakdown,
        )
