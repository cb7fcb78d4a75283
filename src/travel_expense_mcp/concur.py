"""Concur expense operations built on the authenticated client."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .client import ConcurClient
from .errors import ConnectionFailedError, ValidationError
from .models import (
    CARD_CHARGE_FIELDS,
    ConcurLocation,
    CreateExpenseParams,
    CreateItemizationParams,
    CreateReportParams,
    ExpenseEntryV3,
    ExpenseGroupConfigurations,
    ExpenseType,
    PaymentType,
    PerDiemCalculation,
    PerDiemRate,
    ReceiptImage,
    UpdateExpenseParams,
    V3Page,
)
from .per_diem import PerDiemCalculator
from .xml_fields import extract_blocks, extract_field, extract_records

logger = logging.getLogger(__name__)

RECEIPT_CONTENT_TYPES = ("application/pdf", "image/jpg", "image/jpeg", "image/png")
DEFAULT_PER_DIEM_EXPENSE_TYPE = "MEALN"
DEFAULT_ATTENDEE_TYPE = "BUSGUEST"

SUBMIT_WORKFLOW_ACTION = (
    "<WorkflowAction xmlns='http://www.concursolutions.com/api/expense/expensereport/2011/03'>"
    "<Action>Submit</Action></WorkflowAction>"
)

# Fields accepted by PUT /expense/entries; the GET payload carries read-only extras.
WRITABLE_EXPENSE_FIELDS = (
    "TransactionDate",
    "ExpenseTypeCode",
    "TransactionAmount",
    "TransactionCurrencyCode",
    "VendorDescription",
    "Description",
    "Comment",
    "PaymentTypeID",
    "ReportID",
    "LocationID",
    "IsBillable",
    "IsPersonal",
    *(f"Custom{index}" for index in range(1, 25)),
)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class ConcurService:
    """Reports, expenses, attendees, itemizations, receipts and per diem."""

    def __init__(
        self,
        client: ConcurClient,
        per_diem: PerDiemCalculator | None = None,
    ) -> None:
        self.client = client
        self.per_diem = per_diem or PerDiemCalculator()

    async def aclose(self) -> None:
        await self.client.aclose()

    # -- reports ---------------------------------------------------------------

    async def get_reports(self) -> dict[str, list[dict[str, Any]]]:
        data = await self.client.get_json(
            "/api/v3.0/expense/reports", context="getReports", params={"limit": 100}
        )
        return V3Page.model_validate(data).as_items()

    async def get_report_details(self, report_id: str) -> dict[str, Any]:
        return await self.client.get_json(
            f"/api/v3.0/expense/reports/{_segment(report_id)}",
            context=f"getReportDetails({report_id})",
        )

    async def create_report(self, params: CreateReportParams) -> dict[str, Any]:
        return await self.client.send_json(
            "POST",
            "/api/v3.0/expense/reports",
            {
                "Name": params.name,
                "Purpose": params.purpose,
                "UserDefinedDate": params.start_date,
            },
            context="createReport",
        )

    async def delete_report(self, report_id: str) -> bool:
        await self.client.request(
            "DELETE",
            f"/api/v3.0/expense/reports/{_segment(report_id)}",
            context=f"deleteReport({report_id})",
        )
        return True

    async def submit_report(self, report_id: str) -> dict[str, Any]:
        response = await self.client.request(
            "POST",
            f"/api/expense/expensereport/v1.1/report/{_segment(report_id)}/submit",
            context=f"submitReport({report_id})",
            content=SUBMIT_WORKFLOW_ACTION,
            headers={"Content-Type": "application/xml", "Accept": "application/xml"},
        )
        return {
            "success": True,
            "report_id": report_id,
            "status": extract_field(response.text, "Status"),
        }

    async def get_report_v4(self, report_id: str) -> dict[str, Any]:
        return await self.client.get_json(
            f"/expensereports/v4/reports/{_segment(report_id)}",
            context=f"getReportV4({report_id})",
        )

    # -- expenses --------------------------------------------------------------

    async def get_expenses(self, report_id: str | None = None) -> dict[str, list[dict[str, Any]]]:
        params: dict[str, Any] = {"limit": 100}
        if report_id:
            params["reportID"] = report_id
        data = await self.client.get_json(
            "/api/v3.0/expense/entries", context="getExpenses", params=params
        )
        return V3Page.model_validate(data).as_items()

    async def get_expenses_v4(self, report_id: str) -> Any:
        return await self.client.get_json(
            f"/expensereports/v4/reports/{_segment(report_id)}/expenses",
            context=f"getExpensesV4({report_id})",
        )

    async def get_expense_details(self, expense_id: str) -> dict[str, Any]:
        return await self.client.get_json(
            f"/api/v3.0/expense/entries/{_segment(expense_id)}",
            context=f"getExpenseDetails({expense_id})",
        )

    async def create_expense(self, params: CreateExpenseParams) -> dict[str, Any]:
        config = await self.get_expense_group_configurations_model()
        self._require_expense_type(params.expense_type_code, config.expense_types())

        payment_type_id = params.payment_type_id or _resolve_payment_type(
            config.payment_types(), params.payment_type_name
        )

        location_id = params.location_id
        if not location_id and params.location_city:
            locations = await self.search_locations(params.location_city)
            if locations:
                location_id = locations[0].id

        return await self._post_expense(
            _expense_body(params, payment_type_id=payment_type_id, location_id=location_id)
        )

    async def _post_expense(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self.client.send_json(
            "POST", "/api/v3.0/expense/entries", body, context="createExpense"
        )

    async def update_expense(self, expense_id: str, updates: UpdateExpenseParams) -> bool:
        existing = await self.get_expense_details(expense_id)

        body = {
            field: existing[field]
            for field in WRITABLE_EXPENSE_FIELDS
            if existing.get(field) is not None
        }
        changes = {
            "TransactionDate": updates.transaction_date,
            "ExpenseTypeCode": updates.expense_type_code,
            "Description": updates.business_purpose,
            "VendorDescription": updates.vendor_description,
            "TransactionAmount": updates.transaction_amount,
            "TransactionCurrencyCode": updates.currency_code,
            "ReportID": updates.report_id,
            "LocationID": updates.location_id,
        }
        body.update({key: value for key, value in changes.items() if value})

        await self.client.send_json(
            "PUT",
            f"/api/v3.0/expense/entries/{_segment(expense_id)}",
            body,
            context=f"updateExpense({expense_id})",
        )
        return True

    async def delete_expense(self, expense_id: str) -> bool:
        await self.client.request(
            "DELETE",
            f"/api/v3.0/expense/entries/{_segment(expense_id)}",
            context=f"deleteExpense({expense_id})",
        )
        return True

    async def add_expense_comment(
        self, expense_id: str, comment: str, report_id: str | None = None
    ) -> dict[str, Any]:
        resolved_report_id = report_id
        if not resolved_report_id:
            existing = ExpenseEntryV3.model_validate(await self.get_expense_details(expense_id))
            resolved_report_id = existing.report_id
        if not resolved_report_id:
            raise ValidationError(
                "Could not determine ReportID for expense. Please provide reportId parameter."
            )

        await self.client.send_json(
            "PUT",
            f"/expensereports/v4/reports/{_segment(resolved_report_id)}"
            f"/expenses/{_segment(expense_id)}/comments",
            {"comment": comment},
            context=f"addExpenseComment({expense_id})",
        )
        return {
            "success": True,
            "expense_id": expense_id,
            "report_id": resolved_report_id,
            "comment": comment,
        }

    # -- configuration ---------------------------------------------------------

    async def get_expense_group_configurations(self) -> Any:
        return await self.client.get_json(
            "/api/v3.0/expense/expensegroupconfigurations",
            context="getExpenseGroupConfigurations",
        )

    async def get_expense_group_configurations_model(self) -> ExpenseGroupConfigurations:
        return ExpenseGroupConfigurations.model_validate(
            await self.get_expense_group_configurations()
        )

    async def get_expense_types(self) -> list[ExpenseType]:
        config = await self.get_expense_group_configurations_model()
        return config.expense_types()

    async def get_payment_types(self) -> list[PaymentType]:
        config = await self.get_expense_group_configurations_model()
        return config.payment_types()

    async def resolve_payment_type_id(self, payment_type_name: str | None = None) -> str:
        return _resolve_payment_type(await self.get_payment_types(), payment_type_name)

    async def validate_expense_type_code(self, code: str) -> bool:
        return any(expense_type.code == code for expense_type in await self.get_expense_types())

    def _require_expense_type(self, code: str, expense_types: list[ExpenseType]) -> None:
        if any(expense_type.code == code for expense_type in expense_types):
            return
        valid_codes = ", ".join(expense_type.code for expense_type in expense_types)
        raise ValidationError(
            f'Invalid ExpenseTypeCode: "{code}". '
            f"Valid codes for your expense group: {valid_codes or 'none found'}"
        )

    async def search_locations(self, city: str) -> list[ConcurLocation]:
        data = await self.client.get_json(
            "/api/v3.0/common/locations",
            context=f"searchLocations({city})",
            params={"city": city, "limit": 10},
        )
        return [ConcurLocation.model_validate(item) for item in V3Page.model_validate(data).items]

    async def get_user_profile(self) -> dict[str, Any] | None:
        data = await self.client.get_json(
            "/api/v3.0/common/users", context="getUserProfile", params={"primary": "true"}
        )
        items = V3Page.model_validate(data).items
        return items[0] if items else None

    # -- card charges ----------------------------------------------------------

    async def get_card_charges(self) -> dict[str, list[dict[str, str]]]:
        response = await self.client.request(
            "GET",
            "/api/expense/expensereport/v1.1/CardCharges",
            context="getCardCharges",
            headers={"Accept": "application/xml"},
        )
        return {"Items": extract_records(response.text, "CardCharge", CARD_CHARGE_FIELDS)}

    # -- attendees -------------------------------------------------------------

    async def get_expense_attendees(self, entry_id: str) -> dict[str, list[dict[str, Any]]]:
        data = await self.client.get_json(
            "/api/v3.0/expense/entryattendeeassociations",
            context=f"getExpenseAttendees({entry_id})",
            params={"entryID": entry_id, "limit": 100},
        )
        return V3Page.model_validate(data).as_items()

    async def add_expense_attendee(
        self,
        entry_id: str,
        attendee_id: str,
        amount: float | None = None,
        associated_attendee_count: int | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"EntryID": entry_id, "AttendeeID": attendee_id}
        if amount is not None:
            body["Amount"] = amount
        if associated_attendee_count is not None:
            body["AssociatedAttendeeCount"] = associated_attendee_count
        return await self.client.send_json(
            "POST",
            "/api/v3.0/expense/entryattendeeassociations",
            body,
            context="addExpenseAttendee",
        )

    async def remove_expense_attendee(self, association_id: str) -> bool:
        await self.client.request(
            "DELETE",
            f"/api/v3.0/expense/entryattendeeassociations/{_segment(association_id)}",
            context=f"removeExpenseAttendee({association_id})",
        )
        return True

    async def search_attendees(self, search_term: str) -> dict[str, list[dict[str, Any]]]:
        data = await self.client.get_json(
            "/api/v3.0/common/attendees",
            context="searchAttendees",
            params={"attendeeTypeCode": DEFAULT_ATTENDEE_TYPE, "limit": 25},
        )
        term = search_term.lower()
        matches = []
        for attendee in V3Page.model_validate(data).items:
            name = f"{attendee.get('FirstName') or ''} {attendee.get('LastName') or ''}".lower()
            company = (attendee.get("Company") or "").lower()
            if term in name or term in company:
                matches.append(attendee)
        return {"Items": matches}

    async def create_attendee(
        self,
        first_name: str,
        last_name: str,
        company: str | None = None,
        title: str | None = None,
        attendee_type_code: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "FirstName": first_name,
            "LastName": last_name,
            "AttendeeTypeCode": attendee_type_code or DEFAULT_ATTENDEE_TYPE,
        }
        if company:
            body["Company"] = company
        if title:
            body["Title"] = title
        return await self.client.send_json(
            "POST", "/api/v3.0/common/attendees", body, context="createAttendee"
        )

    # -- itemizations ----------------------------------------------------------

    async def create_itemization(self, params: CreateItemizationParams) -> dict[str, Any]:
        body: dict[str, Any] = {
            "EntryID": params.entry_id,
            "ReportID": params.report_id,
            "ReportOwnerID": params.report_owner_id,
            "ExpenseTypeCode": params.expense_type_code,
            "TransactionDate": params.transaction_date,
            "TransactionAmount": params.transaction_amount,
        }
        if params.description:
            body["Description"] = params.description
        if params.comment:
            body["Comment"] = params.comment
        return await self.client.send_json(
            "POST", "/api/v3.0/expense/itemizations", body, context="createItemization"
        )

    async def get_itemizations(
        self, report_id: str, entry_id: str | None = None
    ) -> dict[str, list[dict[str, Any]]]:
        params: dict[str, Any] = {"reportID": report_id, "limit": 100}
        if entry_id:
            params["entryID"] = entry_id
        data = await self.client.get_json(
            "/api/v3.0/expense/itemizations", context="getItemizations", params=params
        )
        return V3Page.model_validate(data).as_items()

    # -- receipts --------------------------------------------------------------

    async def get_receipt_image_url(self, entry_id: str) -> ReceiptImage:
        response = await self.client.request(
            "GET",
            f"/api/image/v1.0/expenseentry/{_segment(entry_id)}",
            context=f"getReceiptImageUrl({entry_id})",
            headers={"Accept": "application/xml"},
        )
        return _receipt_image(response.text)

    async def get_report_receipt_images(self, report_id: str) -> dict[str, list[ReceiptImage]]:
        response = await self.client.request(
            "GET",
            f"/api/image/v1.0/report/{_segment(report_id)}",
            context=f"getReportReceiptImages({report_id})",
            headers={"Accept": "application/xml"},
        )
        images = [_receipt_image(block) for block in extract_blocks(response.text, "Image")]
        images = [image for image in images if image.id and image.url]
        if not images:
            single = _receipt_image(response.text)
            if single.id and single.url:
                images.append(single)
        return {"Items": images}

    async def upload_receipt(
        self, entry_id: str, image_data: bytes, content_type: str
    ) -> ReceiptImage:
        if content_type not in RECEIPT_CONTENT_TYPES:
            raise ValidationError(
                f"Invalid content type: {content_type}. "
                f"Must be one of: {', '.join(RECEIPT_CONTENT_TYPES)}"
            )
        response = await self.client.request(
            "POST",
            f"/api/image/v1.0/expenseentry/{_segment(entry_id)}",
            context=f"uploadReceiptToExpense({entry_id})",
            content=image_data,
            headers={"Content-Type": content_type, "Accept": "application/xml"},
        )
        return _receipt_image(response.text)

    async def copy_receipt(self, source_entry_id: str, target_entry_id: str) -> dict[str, Any]:
        source = await self.get_receipt_image_url(source_entry_id)
        if not source.url:
            raise ValidationError(f"No receipt image found on expense {source_entry_id}")

        # Presigned URL: must be fetched without the Concur bearer token.
        try:
            response = await self.client.http.get(source.url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise ConnectionFailedError(f"receipt_download_failed: {exc}") from exc
        if not response.is_success:
            raise ValidationError(
                f"Could not download receipt from expense {source_entry_id}: "
                f"{response.status_code} {response.reason_phrase}"
            )

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in RECEIPT_CONTENT_TYPES:
            content_type = _sniff_content_type(response.content) or content_type
        uploaded = await self.upload_receipt(target_entry_id, response.content, content_type)
        logger.info(
            "concur_receipt_copied source=%s target=%s bytes=%s",
            source_entry_id,
            target_entry_id,
            len(response.content),
        )
        return {
            "success": True,
            "source_entry_id": source_entry_id,
            "target_entry_id": target_entry_id,
            "content_type": content_type,
            "image": uploaded.model_dump(),
        }

    # -- per diem --------------------------------------------------------------

    def get_per_diem_rates(self) -> list[PerDiemRate]:
        return self.per_diem.rates

    def calculate_per_diem(self, start_date: str, end_date: str, location: str) -> PerDiemCalculation:
        return self.per_diem.calculate(start_date, end_date, location)

    async def create_per_diem_expenses(
        self,
        report_id: str,
        start_date: str,
        end_date: str,
        location: str,
        business_purpose: str,
        expense_type_code: str | None = None,
    ) -> tuple[PerDiemCalculation, list[dict[str, Any]]]:
        calculation = self.calculate_per_diem(start_date, end_date, location)
        code = expense_type_code or DEFAULT_PER_DIEM_EXPENSE_TYPE

        config = await self.get_expense_group_configurations_model()
        self._require_expense_type(code, config.expense_types())
        payment_type_id = _resolve_payment_type(config.payment_types(), None)

        expenses = []
        for day in calculation.breakdown:
            label = "Full Day" if day.day_type == "full" else "Travel Day"
            params = CreateExpenseParams(
                report_id=report_id,
                transaction_date=day.date,
                expense_type_code=code,
                transaction_amount=day.rate,
                currency_code="USD",
                vendor_description=f"Per Diem - {day.location}",
                business_purpose=f"{business_purpose} ({label})",
            )
            expenses.append(
                await self._post_expense(_expense_body(params, payment_type_id=payment_type_id))
            )

        logger.info(
            "concur_per_diem_created report=%s days=%s total=%.2f",
            report_id,
            calculation.total_days,
            calculation.total_amount,
        )
        return calculation, expenses


def _resolve_payment_type(payment_types: list[PaymentType], name: str | None) -> str:
    if name:
        wanted = name.lower()
        for payment_type in payment_types:
            candidate = payment_type.name.lower()
            if wanted in candidate or candidate in wanted:
                return payment_type.id

    for payment_type in payment_types:
        if payment_type.is_default:
            return payment_type.id

    if payment_types:
        return payment_types[0].id

    raise ValidationError("No payment types available. Cannot create expense without PaymentTypeID.")


def _expense_body(
    params: CreateExpenseParams,
    *,
    payment_type_id: str,
    location_id: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "TransactionDate": params.transaction_date,
        "ExpenseTypeCode": params.expense_type_code,
        "VendorDescription": params.vendor_description,
        "TransactionAmount": params.transaction_amount,
        "TransactionCurrencyCode": params.currency_code,
        "PaymentTypeID": payment_type_id,
    }
    if params.report_id:
        body["ReportID"] = params.report_id
    if location_id:
        body["LocationID"] = location_id
    if params.comment:
        body["Comment"] = params.comment
    if params.description:
        body["Description"] = params.description
    if params.business_purpose:
        body["Description"] = params.business_purpose
    if params.is_billable is not None:
        body["IsBillable"] = params.is_billable
    if params.is_personal is not None:
        body["IsPersonal"] = params.is_personal
    return body


_RECEIPT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
)


def _sniff_content_type(data: bytes) -> str | None:
    """Content type from leading magic bytes, for downloads served as octet-stream."""
    for signature, content_type in _RECEIPT_SIGNATURES:
        if data.startswith(signature):
            return content_type
    return None


def _receipt_image(xml: str) -> ReceiptImage:
    return ReceiptImage(id=extract_field(xml, "Id"), url=extract_field(xml, "Url"))
