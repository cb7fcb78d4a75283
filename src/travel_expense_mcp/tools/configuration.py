"""Expense group configuration, lookup and connectivity tools."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from .common import register, tool_errors

CONCUR_API_GUIDE = """
# Concur MCP Server Guide

This server provides tools to interact with the SAP Concur API.

## Available Tools

### Reports
- **list_concur_reports**: List expense reports.
- **get_concur_report_details**: Get full details of a specific report.
- **get_report_v4**: Get a report through the v4 API.
- **create_concur_report**: Create a new expense report.
- **delete_concur_report**: Delete a report.
- **submit_report**: Submit a report for approval.

### Expenses
- **list_concur_expenses**: List expenses, optionally filtered by report.
- **list_expenses_v4**: List a report's expenses through the v4 API.
- **get_concur_expense_details**: Get details of a specific expense.
- **create_concur_expense**: Create a new expense entry (auto-resolves PaymentTypeID).
- **update_concur_expense**: Update an existing expense.
- **delete_concur_expense**: Delete an expense.
- **add_expense_comment**: Comment on an expense.
- **create_expense_itemization** / **get_expense_itemizations**: Split an expense.

### Card Charges
- **list_card_charges**: List unassigned corporate card transactions.

### Receipts
- **get_receipt_image_url**: Get receipt image URL for an expense.
- **list_report_receipts**: List all receipts on a report.
- **upload_receipt**: Upload a base64 receipt image to an expense.
- **copy_receipt**: Copy a receipt from one expense to another.

### Attendees
- **search_attendees**: Search for existing attendees.
- **create_attendee**: Create a new attendee record.
- **get_expense_attendees**: Get attendees on an expense.
- **add_expense_attendee**: Add an attendee to an expense.
- **remove_expense_attendee**: Remove an attendee from an expense.

### Per Diem
- **get_per_diem_rates**: Get company per diem rates by location.
- **calculate_per_diem**: Preview per diem for dates and a location.
- **create_per_diem_expenses**: Create per diem expense entries for a trip.

### Configuration
- **get_expense_group_config**: Full expense group config with valid expense types and payment type IDs.
- **get_concur_expense_types**: List available expense types for your group.
- **get_concur_payment_types**: List payment types with internal IDs.
- **search_locations**: Find Concur LocationIDs by city.
- **test_concur_connection**: Verify API connectivity.

## Per Diem Rates

### US Locations
| Location | Full Day | First/Last Day |
|----------|----------|----------------|
| NYC/SF | $92.00 | $69.00 |
| Boston | $18.00 | $18.00 |
| Other US | $74.00 | $56.00 |

### International
| Location | Full Day | First/Last Day |
|----------|----------|----------------|
| Switzerland/London/Copenhagen | $150.00 | $112.50 |
| Rest of World | $100.00 | $75.00 |

## Workflow Tips

1. Before creating expenses, call `get_expense_group_config` to get valid expense type codes and payment type IDs.
2. Use `list_card_charges` to see unassigned card transactions.
3. Use `create_concur_expense` to create expenses; PaymentTypeID is resolved from your expense group.
4. Use `upload_receipt` to attach receipt images.
5. For meals and entertainment, use `search_attendees` or `create_attendee`, then `add_expense_attendee`.
6. Use `submit_report` when the report is complete.

## Common Errors

- "Invalid ExpenseTypeCode": use `get_expense_group_config` to see valid codes for your expense group.
- "No payment types available": your expense group has no payment types configured; pass payment_type_id explicitly.
"""


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def get_concur_expense_types() -> list[dict[str, Any]]:
        """List expense types (deduplicated by code) for your expense group."""
        return [item.model_dump(by_alias=True) for item in await service.get_expense_types()]

    @tool_errors()
    async def get_concur_payment_types() -> list[dict[str, Any]]:
        """List payment types with their internal IDs."""
        return [item.model_dump(by_alias=True) for item in await service.get_payment_types()]

    @tool_errors()
    async def get_expense_group_config() -> Any:
        """Get the raw expense group configuration (policies, expense types, payment types)."""
        return await service.get_expense_group_configurations()

    @tool_errors()
    async def search_locations(city: str) -> list[dict[str, Any]]:
        """Search Concur location IDs by city name."""
        return [location.model_dump(by_alias=True) for location in await service.search_locations(city)]

    @tool_errors(prefix="Connection failed: ")
    async def test_concur_connection() -> str:
        """Test the connection to the Concur API."""
        # Some tokens get 403 from the user profile endpoint; report listing does not.
        reports = await service.get_reports()
        return f"Connection successful! Found {len(reports['Items'])} reports."

    async def get_concur_api_guide() -> str:
        """Get a guide to the Concur tools and recommended workflow."""
        return CONCUR_API_GUIDE

    return register(
        mcp,
        {
            "get_concur_expense_types": get_concur_expense_types,
            "get_concur_payment_types": get_concur_payment_types,
            "get_expense_group_config": get_expense_group_config,
            "search_locations": search_locations,
            "test_concur_connection": test_concur_connection,
            "get_concur_api_guide": get_concur_api_guide,
        },
    )
