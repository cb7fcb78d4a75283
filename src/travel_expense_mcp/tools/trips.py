"""TripIt itinerary tools."""

from typing import Any

from fastmcp import FastMCP

from ..tripit import TripItClient
from .common import dump, register, tool_errors

TRIPIT_API_GUIDE = """
# TripIt MCP Server Guide

This server provides read-only tools for the TripIt API.

## Available Tools

### Trip Listing
- **list_trips**: List all trips (past and upcoming)
- **list_upcoming_trips**: List only future trips
- **list_past_trips**: List past trips with optional limit

### Trip Details
- **get_trip_details**: Full trip details including flights, hotels, activities
- **get_trip_flights**: Just the flight segments for a trip
- **get_trip_hotels**: Just the hotel reservations for a trip

### Utility
- **test_tripit_connection**: Verify API connectivity
- **reconcile_card_charges**: Match unassigned card charges to trips by date

## Workflow Tips

1. Use `list_past_trips` to find recent business trips
2. Use `get_trip_details` to get dates and locations for expense reports
3. Use `reconcile_card_charges` to match card charges with trip dates
"""


def register_tools(mcp: FastMCP, tripit: TripItClient) -> dict[str, Any]:
    @tool_errors()
    async def list_trips(include_past: bool = True) -> list[dict[str, Any]]:
        """List TripIt trips, newest first."""
        return dump(await tripit.get_trips(include_past))

    @tool_errors()
    async def list_upcoming_trips() -> list[dict[str, Any]]:
        """List upcoming trips only."""
        return dump(await tripit.get_upcoming_trips())

    @tool_errors()
    async def list_past_trips(limit: int = 10) -> list[dict[str, Any]]:
        """List past trips, most recent first."""
        return dump(await tripit.get_past_trips(limit))

    @tool_errors()
    async def get_trip_details(trip_id: str) -> dict[str, Any]:
        """Get a trip with its flights, hotels and activities."""
        return dump(await tripit.get_trip_details(trip_id))

    @tool_errors()
    async def get_trip_flights(trip_id: str) -> dict[str, Any]:
        """Get the flight segments for a trip."""
        details = await tripit.get_trip_details(trip_id)
        return {"flights": dump(details.flights)}

    @tool_errors()
    async def get_trip_hotels(trip_id: str) -> dict[str, Any]:
        """Get the hotel reservations for a trip."""
        details = await tripit.get_trip_details(trip_id)
        return {"hotels": dump(details.hotels)}

    @tool_errors(prefix="Connection failed: ")
    async def test_tripit_connection() -> str:
        """Test the connection to the TripIt API."""
        trips = await tripit.get_trips(include_past=False)
        return f"Connection successful! Found {len(trips)} upcoming trips."

    async def get_tripit_api_guide() -> str:
        """Get a guide to the TripIt tools."""
        return TRIPIT_API_GUIDE

    return register(
        mcp,
        {
            "list_trips": list_trips,
            "list_upcoming_trips": list_upcoming_trips,
            "list_past_trips": list_past_trips,
            "get_trip_details": get_trip_details,
            "get_trip_flights": get_trip_flights,
            "get_trip_hotels": get_trip_hotels,
            "test_tripit_connection": test_tripit_connection,
            "get_tripit_api_guide": get_tripit_api_guide,
        },
    )
