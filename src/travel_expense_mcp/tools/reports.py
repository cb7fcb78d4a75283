"""Expense report tools."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from ..models import CreateReportParams
from .common import register, tool_errors


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def list_concur_reports() -> dict[str, Any]:
        """List the current user's expense reports."""
        return await service.get_reports()

    @tool_errors()
    async def get_concur_report_details(report_id: str) -> dict[str, Any]:
        """Get full details for one expense report."""
        return await service.get_report_details(report_id)

    @tool_errors()
    async def create_concur_report(name: str, purpose: str, start_date: str) -> dict[str, Any]:
        """Create a new expense report. start_date is YYYY-MM-DD."""
        return await service.create_report(
            CreateReportParams(name=name, purpose=purpose, start_date=start_date)
        )

    @tool_errors()
    async def delete_concur_report(report_id: str) -> dict[str, Any]:
        """Delete an expense report."""
        await service.delete_report(report_id)
        return {"success": True, "message": f"Report {report_id} deleted successfully."}

    @tool_errors()
    async def submit_report(report_id: str) -> dict[str, Any]:
        """Submit an expense report for approval."""
        result = await service.submit_report(report_id)
        return {**result, "message": f"Report {report_id} submitted successfully."}

    @tool_errors()
    async def get_report_v4(report_id: str) -> dict[str, Any]:
        """Get a report through the v4 API (includes approval and workflow details)."""
        return await service.get_report_v4(report_id)

    return register(
        mcp,
        {
            "list_concur_reports": list_concur_reports,
            "get_concur_report_details": get_concur_report_details,
            "create_concur_report": create_concur_report,
            "delete_concur_report": delete_concur_report,
            "submit_report": submit_report,
            "get_report_v4": get_report_v4,
        },
    )
