"""
TripIt read-only client.

Requests are signed with OAuth 1.0a HMAC-SHA1 using a pre-authorised access
token pair, so no interactive authorisation flow is needed at runtime.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import logging
import secrets
import time
from datetime import date, datetime
from typing import Any, Callable, Mapping
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

import httpx

from .errors import ApiError, ConnectionFailedError
from .models import Activity, FlightSegment, HotelReservation, Trip, TripDetails

logger = logging.getLogger(__name__)


def _escape(value: str) -> str:
    return quote(str(value), safe="-._~")


def _normalise_url(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, "", ""))


class OAuth1Signer:
    """HMAC-SHA1 request signer producing an ``Authorization: OAuth ...`` header."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        token: str,
        token_secret: str,
        *,
        nonce_factory: Callable[[], str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.token = token
        self.token_secret = token_secret
        self._nonce_factory = nonce_factory or (lambda: secrets.token_hex(16))
        self._clock = clock

    def oauth_params(self) -> dict[str, str]:
        return {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": self._nonce_factory(),
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": str(int(self._clock())),
            "oauth_token": self.token,
            "oauth_version": "1.0",
        }

    def signature(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
    ) -> str:
        query = parse_qsl(urlsplit(url).query, keep_blank_values=True)
        pairs = sorted((_escape(k), _escape(v)) for k, v in [*params.items(), *query])
        normalized = "&".join(f"{k}={v}" for k, v in pairs)
        base_string = "&".join(
            [method.upper(), _escape(_normalise_url(url)), _escape(normalized)]
        )
        key = f"{_escape(self.consumer_secret)}&{_escape(self.token_secret)}"
        digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
        return base64.b64encode(digest).decode("ascii")

    def authorization_header(self, method: str, url: str) -> str:
        oauth = self.oauth_params()
        oauth["oauth_signature"] = self.signature(method, url, oauth)
        fields = ", ".join(f'{_escape(k)}="{_escape(v)}"' for k, v in sorted(oauth.items()))
        return f"OAuth {fields}"


def _as_list(value: Any) -> list[Any]:
    """TripIt returns a bare object when a collection has one member."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _parse_day(value: Any) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None


def _optional_id(value: Any) -> str | None:
    return None if value is None else str(value)


def _primary_location(trip: Mapping[str, Any]) -> str:
    address = trip.get("PrimaryLocationAddress") or {}
    return address.get("city") or address.get("address") or "Unknown"


def _date_time(value: Any) -> str:
    value = value or {}
    return f"{value.get('date') or ''} {value.get('time') or ''}".strip()


class TripItClient:
    """Lists trips and itinerary objects from the TripIt v1 API."""

    def __init__(
        self,
        signer: OAuth1Signer,
        *,
        base_url: str = "https://api.tripit.com",
        http: httpx.AsyncClient | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=10.0,
                read=30.0,
                write=10.0,
                pool=10.0,
            ),
        )
        self._today = today

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _get(self, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {
            "Accept": "application/json",
            "Authorization": self.signer.authorization_header("GET", url),
        }
        try:
            response = await self.http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise ConnectionFailedError(f"tripit_connection_failed: {exc}") from exc

        if not response.is_success:
            logger.warning("tripit_api_error path=%s status=%s", path, response.status_code)
            raise ApiError(
                f"TripIt API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body=response.text or None,
                context=path,
            )

        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def _list(self, past: bool) -> list[dict[str, Any]]:
        flag = "true" if past else "false"
        data = await self._get(f"/v1/list/trip/past/{flag}/format/json")
        return _as_list(data.get("Trip"))

    def _shape_trip(self, raw: Mapping[str, Any]) -> Trip:
        end = _parse_day(raw.get("end_date"))
        return Trip(
            id=str(raw.get("id") or ""),
            display_name=raw.get("display_name") or "",
            start_date=raw.get("start_date") or "",
            end_date=raw.get("end_date") or "",
            primary_location=_primary_location(raw),
            is_past=end is not None and end < self._today(),
        )

    async def get_trips(self, include_past: bool = True) -> list[Trip]:
        if include_past:
            past, upcoming = await asyncio.gather(self._list(True), self._list(False))
        else:
            past, upcoming = [], await self._list(False)

        trips = [self._shape_trip(raw) for raw in [*upcoming, *past]]
        trips.sort(key=lambda trip: _parse_day(trip.start_date) or date.min, reverse=True)
        logger.debug("tripit_trips_listed count=%s include_past=%s", len(trips), include_past)
        return trips

    async def get_upcoming_trips(self) -> list[Trip]:
        return await self.get_trips(include_past=False)

    async def get_past_trips(self, limit: int = 10) -> list[Trip]:
        trips = await self.get_trips(include_past=True)
        return [trip for trip in trips if trip.is_past][:limit]

    async def get_trip_details(self, trip_id: str) -> TripDetails:
        data = await self._get(
            f"/v1/get/trip/id/{quote(str(trip_id), safe='')}/include_objects/true/format/json"
        )
        trips = _as_list(data.get("Trip"))
        if not trips:
            raise ApiError(f"Trip {trip_id} not found", status_code=404, status_text="Not Found")
        trip = trips[0]

        flights = []
        for air in _as_list(data.get("AirObject")):
            for segment in _as_list(air.get("Segment")):
                flights.append(
                    FlightSegment(
                        id=_optional_id(segment.get("id") or air.get("id")),
                        confirmation_num=air.get("booking_confirmation_num"),
                        airline=segment.get("marketing_airline") or "Unknown",
                        flight_number=segment.get("marketing_flight_number") or "",
                        departure_airport=segment.get("start_airport_code") or "",
                        arrival_airport=segment.get("end_airport_code") or "",
                        departure_time=_date_time(segment.get("StartDateTime")),
                        arrival_time=_date_time(segment.get("EndDateTime")),
                    )
                )

        hotels = [
            HotelReservation(
                id=_optional_id(hotel.get("id")),
                confirmation_num=hotel.get("booking_confirmation_num"),
                hotel_name=hotel.get("display_name") or "Unknown Hotel",
                address=(hotel.get("Address") or {}).get("address"),
                check_in_date=(hotel.get("StartDateTime") or {}).get("date") or "",
                check_out_date=(hotel.get("EndDateTime") or {}).get("date") or "",
                room_type=hotel.get("room_type"),
            )
            for hotel in _as_list(data.get("LodgingObject"))
        ]

        activities = [
            Activity(
                id=_optional_id(activity.get("id")),
                display_name=activity.get("display_name") or "Activity",
                start_date=(activity.get("StartDateTime") or {}).get("date") or "",
                end_date=(activity.get("EndDateTime") or {}).get("date"),
                address=(activity.get("Address") or {}).get("address"),
            )
            for activity in _as_list(data.get("ActivityObject"))
        ]

        return TripDetails(
            id=str(trip.get("id") or trip_id),
            display_name=trip.get("display_name") or "",
            start_date=trip.get("start_date") or "",
            end_date=trip.get("end_date") or "",
            primary_location=_primary_location(trip),
            description=trip.get("description"),
            flights=flights,
            hotels=hotels,
            activities=activities,
        )
