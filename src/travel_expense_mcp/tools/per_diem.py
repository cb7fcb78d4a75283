"""Per-diem tools."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from ..errors import ValidationError
from .common import dump, register, tool_errors


def require_location(location: str) -> str:
    if not location or not location.strip():
        raise ValidationError("location is required (city, country or region).")
    return location.strip()


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def get_per_diem_rates() -> list[dict[str, Any]]:
        """List company per-diem rates by location."""
        return dump(service.get_per_diem_rates())

    @tool_errors()
    async def calculate_per_diem(start_date: str, end_date: str, location: str) -> dict[str, Any]:
        """Preview the per-diem allowance for a trip without creating expenses.

        First and last days pay the partial rate; days in between pay the full rate.
        """
        return dump(service.calculate_per_diem(start_date, end_date, require_location(location)))

    @tool_errors()
    async def create_per_diem_expenses(
        report_id: str,
        start_date: str,
        end_date: str,
        location: str,
        business_purpose: str,
        expense_type_code: str = "MEALN",
    ) -> dict[str, Any]:
        """Create one per-diem expense per trip day on a report."""
        calculation, expenses = await service.create_per_diem_expenses(
            report_id,
            start_date,
            end_date,
            require_location(location),
            business_purpose,
            expense_type_code,
        )
        return {
            "message": (
                f"Created {len(expenses)} per diem expenses totaling "
                f"${calculation.total_amount:.2f}"
            ),
            "calculation": dump(calculation),
            "expense_ids": [expense.get("ID") or expense.get("id") for expense in expenses],
        }

    return register(
        mcp,
        {
            "get_per_diem_rates": get_per_diem_rates,
            "calculate_per_diem": calculate_per_diem,
            "create_per_diem_expenses": create_per_diem_expenses,
        },
    )
