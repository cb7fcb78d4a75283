"""Card charge to trip reconciliation tool."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from ..reconcile import match_charges_to_trips
from ..tripit import TripItClient
from .common import dump, register, tool_errors


def register_tools(mcp: FastMCP, service: ConcurService, tripit: TripItClient) -> dict[str, Any]:
    @tool_errors()
    async def reconcile_card_charges(
        buffer_days: int = 1, include_past: bool = True
    ) -> dict[str, Any]:
        """Match unassigned card charges to TripIt trips by transaction date.

        A charge matches a trip when its date falls within the trip dates
        widened by buffer_days on each side.
        """
        charges = await service.get_card_charges()
        trips = await tripit.get_trips(include_past)
        result = match_charges_to_trips(charges["Items"], trips, buffer_days=buffer_days)
        return {
            **dump(result),
            "summary": {
                "charges": len(charges["Items"]),
                "matched": len(result.matched),
                "unmatched": len(result.unmatched),
            },
        }

    return register(mcp, {"reconcile_card_charges": reconcile_card_charges})
