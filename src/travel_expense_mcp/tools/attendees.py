"""Attendee tools for meal and entertainment expenses."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from .common import register, tool_errors


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def get_expense_attendees(entry_id: str) -> dict[str, Any]:
        """List attendees associated with an expense."""
        return await service.get_expense_attendees(entry_id)

    @tool_errors()
    async def add_expense_attendee(
        entry_id: str,
        attendee_id: str,
        amount: float | None = None,
        associated_attendee_count: int | None = None,
    ) -> dict[str, Any]:
        """Associate an existing attendee with an expense."""
        return await service.add_expense_attendee(
            entry_id, attendee_id, amount, associated_attendee_count
        )

    @tool_errors()
    async def remove_expense_attendee(association_id: str) -> dict[str, Any]:
        """Remove an attendee association from an expense."""
        await service.remove_expense_attendee(association_id)
        return {
            "success": True,
            "message": f"Attendee association {association_id} removed successfully.",
        }

    @tool_errors()
    async def search_attendees(search_term: str) -> dict[str, Any]:
        """Search business guests by name or company."""
        return await service.search_attendees(search_term)

    @tool_errors()
    async def create_attendee(
        first_name: str,
        last_name: str,
        company: str | None = None,
        title: str | None = None,
        attendee_type_code: str = "BUSGUEST",
    ) -> dict[str, Any]:
        """Create a new attendee record (business guest by default)."""
        return await service.create_attendee(
            first_name, last_name, company, title, attendee_type_code
        )

    return register(
        mcp,
        {
            "get_expense_attendees": get_expense_attendees,
            "add_expense_attendee": add_expense_attendee,
            "remove_expense_attendee": remove_expense_attendee,
            "search_attendees": search_attendees,
            "create_attendee": create_attendee,
        },
    )
