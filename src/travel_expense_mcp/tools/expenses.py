"""Expense entry, itemization and card charge tools."""

from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from ..models import CreateExpenseParams, CreateItemizationParams, UpdateExpenseParams
from .common import register, tool_errors


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def list_concur_expenses(report_id: str | None = None) -> dict[str, Any]:
        """List expense entries, optionally limited to one report."""
        return await service.get_expenses(report_id)

    @tool_errors()
    async def list_expenses_v4(report_id: str) -> Any:
        """List a report's expenses through the v4 API."""
        return await service.get_expenses_v4(report_id)

    @tool_errors()
    async def get_concur_expense_details(expense_id: str) -> dict[str, Any]:
        """Get full details for one expense entry."""
        return await service.get_expense_details(expense_id)

    @tool_errors()
    async def create_concur_expense(
        transaction_date: str,
        expense_type_code: str,
        vendor_description: str,
        transaction_amount: float,
        currency_code: str,
        business_purpose: str | None = None,
        report_id: str | None = None,
        payment_type_id: str | None = None,
        payment_type_name: str | None = None,
        location_id: str | None = None,
        location_city: str | None = None,
        comment: str | None = None,
        is_billable: bool | None = None,
        is_personal: bool | None = None,
    ) -> dict[str, Any]:
        """Create an expense entry.

        The expense type code must belong to your expense group (see
        get_expense_group_config). The payment type is resolved from
        payment_type_id, else payment_type_name, else the group default.
        location_city is looked up to fill LocationID when no id is given.
        """
        params = CreateExpenseParams(
            transaction_date=transaction_date,
            expense_type_code=expense_type_code,
            vendor_description=vendor_description,
            transaction_amount=transaction_amount,
            currency_code=currency_code,
            business_purpose=business_purpose,
            report_id=report_id,
            payment_type_id=payment_type_id,
            payment_type_name=payment_type_name,
            location_id=location_id,
            location_city=location_city,
            comment=comment,
            is_billable=is_billable,
            is_personal=is_personal,
        )
        return await service.create_expense(params)

    @tool_errors()
    async def update_concur_expense(
        expense_id: str,
        transaction_date: str | None = None,
        expense_type_code: str | None = None,
        business_purpose: str | None = None,
        vendor_description: str | None = None,
        transaction_amount: float | None = None,
        currency_code: str | None = None,
        report_id: str | None = None,
        location_id: str | None = None,
    ) -> dict[str, Any]:
        """Update an expense entry. Only the fields you pass are changed."""
        updates = UpdateExpenseParams(
            transaction_date=transaction_date,
            expense_type_code=expense_type_code,
            business_purpose=business_purpose,
            vendor_description=vendor_description,
            transaction_amount=transaction_amount,
            currency_code=currency_code,
            report_id=report_id,
            location_id=location_id,
        )
        await service.update_expense(expense_id, updates)
        return {"success": True, "message": f"Expense {expense_id} updated successfully."}

    @tool_errors()
    async def delete_concur_expense(expense_id: str) -> dict[str, Any]:
        """Delete an expense entry."""
        await service.delete_expense(expense_id)
        return {"success": True, "message": f"Expense {expense_id} deleted successfully."}

    @tool_errors()
    async def add_expense_comment(
        expense_id: str, comment: str, report_id: str | None = None
    ) -> dict[str, Any]:
        """Add a comment to an expense. The report is looked up when report_id is omitted."""
        return await service.add_expense_comment(expense_id, comment, report_id)

    @tool_errors()
    async def list_card_charges() -> dict[str, Any]:
        """List unassigned corporate card charges."""
        return await service.get_card_charges()

    @tool_errors()
    async def create_expense_itemization(
        entry_id: str,
        report_id: str,
        report_owner_id: str,
        expense_type_code: str,
        transaction_date: str,
        transaction_amount: float,
        description: str | None = None,
        comment: str | None = None,
    ) -> dict[str, Any]:
        """Split an expense into an itemization (e.g. hotel room vs. meals)."""
        params = CreateItemizationParams(
            entry_id=entry_id,
            report_id=report_id,
            report_owner_id=report_owner_id,
            expense_type_code=expense_type_code,
            transaction_date=transaction_date,
            transaction_amount=transaction_amount,
            description=description,
            comment=comment,
        )
        return await service.create_itemization(params)

    @tool_errors()
    async def get_expense_itemizations(
        report_id: str, entry_id: str | None = None
    ) -> dict[str, Any]:
        """List itemizations on a report, optionally for one entry."""
        return await service.get_itemizations(report_id, entry_id)

    return register(
        mcp,
        {
            "list_concur_expenses": list_concur_expenses,
            "list_expenses_v4": list_expenses_v4,
            "get_concur_expense_details": get_concur_expense_details,
            "create_concur_expense": create_concur_expense,
            "update_concur_expense": update_concur_expense,
            "delete_concur_expense": delete_concur_expense,
            "add_expense_comment": add_expense_comment,
            "list_card_charges": list_card_charges,
            "create_expense_itemization": create_expense_itemization,
            "get_expense_itemizations": get_expense_itemizations,
        },
    )
