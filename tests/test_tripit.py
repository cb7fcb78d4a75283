import base64
import hashlib
import hmac
from datetime import date

import httpx
import pytest
import respx
from travel_expense_mcp.errors import ApiError, ConnectionFailedError
from travel_expense_mcp.tripit import OAuth1Signer, TripItClient

BASE_URL = "https://tripit.test"
PAST_URL = f"{BASE_URL}/v1/list/trip/past/true/format/json"
UPCOMING_URL = f"{BASE_URL}/v1/list/trip/past/false/format/json"


def _signer() -> OAuth1Signer:
    return OAuth1Signer(
        "consumer-key",
        "consumer-secret",
        "token",
        "token-secret",
        nonce_factory=lambda: "nonce123",
        clock=lambda: 1700000000,
    )


def _client() -> TripItClient:
    return TripItClient(_signer(), base_url=BASE_URL, today=lambda: date(2024, 6, 1))


def test_signature_matches_hmac_sha1_base_string():
    signer = _signer()
    params = signer.oauth_params()

    signature = signer.signature("get", "https://API.tripit.com/v1/list/trip?x=1", params)

    signed = {**params, "x": "1"}
    normalized = "&".join(f"{key}={signed[key]}" for key in sorted(signed))
    base_string = "GET&https%3A%2F%2Fapi.tripit.com%2Fv1%2Flist%2Ftrip&" + normalized.replace(
        "=", "%3D"
    ).replace("&", "%26")
    expected = base64.b64encode(
        hmac.new(b"consumer-secret&token-secret", base_string.encode(), hashlib.sha1).digest()
    ).decode()
    assert signature == expected


def test_authorization_header_fields():
    header = _signer().authorization_header("GET", "https://api.tripit.com/v1/get/trip/id/1")

    assert header.startswith("OAuth ")
    assert 'oauth_consumer_key="consumer-key"' in header
    assert 'oauth_token="token"' in header
    assert 'oauth_nonce="nonce123"' in header
    assert 'oauth_timestamp="1700000000"' in header
    assert 'oauth_signature_method="HMAC-SHA1"' in header
    assert "oauth_signature=" in header
    assert "token-secret" not in header


@pytest.mark.asyncio
@respx.mock
async def test_get_trips_normalises_single_object_and_sorts():
    respx.get(PAST_URL).respond(
        200,
        json={
            "Trip": [
                {
                    "id": "1",
                    "display_name": "Boston",
                    "start_date": "2024-01-10",
                    "end_date": "2024-01-12",
                    "PrimaryLocationAddress": {"city": "Boston"},
                },
                {
                    "id": "2",
                    "display_name": "London",
                    "start_date": "2024-04-01",
                    "end_date": "2024-04-05",
                    "PrimaryLocationAddress": {"address": "London, UK"},
                },
            ]
        },
    )
    upcoming = respx.get(UPCOMING_URL).respond(
        200,
        json={
            "Trip": {
                "id": "3",
                "display_name": "Tokyo",
                "start_date": "2024-07-01",
                "end_date": "2024-07-09",
            }
        },
    )
    client = _client()

    trips = await client.get_trips()

    assert [trip.id for trip in trips] == ["3", "2", "1"]
    assert [trip.primary_location for trip in trips] == ["Unknown", "London, UK", "Boston"]
    assert [trip.is_past for trip in trips] == [False, True, True]
    assert upcoming.calls[0].request.headers["Authorization"].startswith("OAuth ")
    await client.aclose()


@pytest.mark.asyncio
async def test_upcoming_trips_skip_past_list():
    client = _client()

    with respx.mock(assert_all_called=False) as mock:
        past = mock.get(PAST_URL).respond(200, json={"Trip": []})
        upcoming = mock.get(UPCOMING_URL).respond(200, json={})

        assert await client.get_upcoming_trips() == []

    assert upcoming.called
    assert not past.called
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_past_trips_limited():
    respx.get(PAST_URL).respond(
        200,
        json={
            "Trip": [
                {"id": str(i), "display_name": f"T{i}", "start_date": f"2024-01-{i:02d}", "end_date": f"2024-01-{i:02d}"}
                for i in range(1, 6)
            ]
        },
    )
    respx.get(UPCOMING_URL).respond(200, json={})
    client = _client()

    trips = await client.get_past_trips(limit=2)

    assert [trip.id for trip in trips] == ["5", "4"]
    await client.aclose()


@pytest.mark.asyncio
async def test_list_error_propagates():
    client = _client()

    with respx.mock(assert_all_called=False) as mock:
        mock.get(PAST_URL).respond(500)
        mock.get(UPCOMING_URL).respond(200, json={})

        with pytest.raises(ApiError) as excinfo:
            await client.get_trips()

    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "TripIt API error: 500 Internal Server Error"
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_transport_error_is_connection_failure():
    respx.get(UPCOMING_URL).mock(side_effect=httpx.ConnectError("down"))
    client = _client()

    with pytest.raises(ConnectionFailedError):
        await client.get_upcoming_trips()
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_trip_details_shapes_objects():
    respx.get(f"{BASE_URL}/v1/get/trip/id/42/include_objects/true/format/json").respond(
        200,
        json={
            "Trip": {
                "id": "42",
                "display_name": "NYC",
                "start_date": "2024-03-10",
                "end_date": "2024-03-12",
                "description": "Client visit",
                "PrimaryLocationAddress": {"city": "New York"},
            },
            "AirObject": {
                "id": "A1",
                "booking_confirmation_num": "XYZ123",
                "Segment": [
                    {
                        "id": "S1",
                        "marketing_airline": "UA",
                        "marketing_flight_number": "100",
                        "start_airport_code": "SFO",
                        "end_airport_code": "JFK",
                        "StartDateTime": {"date": "2024-03-10", "time": "08:00:00"},
                        "EndDateTime": {"date": "2024-03-10", "time": "16:30:00"},
                    },
                    {"start_airport_code": "JFK", "end_airport_code": "SFO"},
                ],
            },
            "LodgingObject": {
                "id": "H1",
                "display_name": "The Hotel",
                "Address": {"address": "1 Main St"},
                "StartDateTime": {"date": "2024-03-10"},
                "EndDateTime": {"date": "2024-03-12"},
            },
            "ActivityObject": [{"id": "X1", "StartDateTime": {"date": "2024-03-11"}}],
        },
    )
    client = _client()

    details = await client.get_trip_details("42")

    assert details.primary_location == "New York"
    assert details.description == "Client visit"
    assert len(details.flights) == 2
    first, second = details.flights
    assert first.id == "S1"
    assert first.confirmation_num == "XYZ123"
    assert first.departure_time == "2024-03-10 08:00:00"
    assert second.id == "A1"
    assert second.airline == "Unknown"
    assert second.departure_time == ""
    assert details.hotels[0].hotel_name == "The Hotel"
    assert details.hotels[0].check_out_date == "2024-03-12"
    assert details.activities[0].display_name == "Activity"
    assert details.activities[0].end_date is None
    await client.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_trip_not_found():
    respx.get(f"{BASE_URL}/v1/get/trip/id/404/include_objects/true/format/json").respond(200, json={})
    client = _client()

    with pytest.raises(ApiError) as excinfo:
        await client.get_trip_details("404")

    assert str(excinfo.value) == "Trip 404 not found"
    assert excinfo.value.status_code == 404
    await client.aclose()
