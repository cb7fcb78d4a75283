"""Match corporate card charges to TripIt trips by transaction date."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, Field

from .models import Trip


class TripSummary(BaseModel):
    id: str
    display_name: str
    start_date: str
    end_date: str
    primary_location: str


class ChargeMatch(BaseModel):
    charge: dict[str, Any]
    trip: TripSummary


class ReconciliationResult(BaseModel):
    matched: list[ChargeMatch] = Field(default_factory=list)
    unmatched: list[dict[str, Any]] = Field(default_factory=list)


def _to_date(value: Any) -> date | None:
    if not value:
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    # e.g. "2024-03-10T00:00:00 PST"
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def match_charges_to_trips(
    charges: Iterable[Mapping[str, Any]],
    trips: Iterable[Trip],
    buffer_days: int = 1,
) -> ReconciliationResult:
    """Pair each charge with the first trip whose window covers its date.

    A trip window is ``[start - buffer_days, end + buffer_days]``. Charges whose
    ``TransactionDate`` cannot be parsed, and trips without usable dates, never
    match.
    """
    buffer = timedelta(days=max(buffer_days, 0))
    windows = []
    for trip in trips:
        start = _to_date(trip.start_date)
        end = _to_date(trip.end_date) or start
        if start is None or end is None:
            continue
        windows.append((start - buffer, end + buffer, trip))

    result = ReconciliationResult()
    for charge in charges:
        charge_date = _to_date(charge.get("TransactionDate"))
        match = None
        if charge_date is not None:
            match = next(
                (trip for low, high, trip in windows if low <= charge_date <= high),
                None,
            )
        if match is None:
            result.unmatched.append(dict(charge))
            continue
        result.matched.append(
            ChargeMatch(
                charge=dict(charge),
                trip=TripSummary(
                    id=match.id,
                    display_name=match.display_name,
                    start_date=match.start_date,
                    end_date=match.end_date,
                    primary_location=match.primary_location,
                ),
            )
        )
    return result
