"""Typed request and response shapes for the Concur and TripIt APIs.

Concur mixes three API generations: v3.0 (JSON, PascalCase), v1.1 (XML) and v4
(JSON, camelCase). Responses are decoded into these models at the client
boundary; unknown provider fields are kept where tools pass records through.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    """OAuth2 token endpoint payload."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


# ---------------------------------------------------------------------------
# v3.0 JSON
# ---------------------------------------------------------------------------


class V3Page(BaseModel):
    """Paged v3 list payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[dict[str, Any]] = Field(default_factory=list, alias="Items")
    next_page: str | None = Field(default=None, alias="NextPage")

    def as_items(self) -> dict[str, list[dict[str, Any]]]:
        return {"Items": self.items}


class ExpenseEntryV3(BaseModel):
    """Subset of a v3 expense entry used for updates and comment routing."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(default=None, alias="ID")
    report_id: str | None = Field(default=None, alias="ReportID")


class ExpenseType(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    code: str = Field(alias="Code")
    name: str = Field(default="", alias="Name")
    expense_code: str = Field(default="", alias="ExpenseCode")


class PaymentType(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(alias="ID")
    name: str = Field(default="", alias="Name")
    is_default: bool = Field(default=False, alias="IsDefault")


class ExpensePolicy(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    expense_types: list[ExpenseType] = Field(default_factory=list, alias="ExpenseTypes")


class ExpenseGroupConfiguration(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    policies: list[ExpensePolicy] = Field(default_factory=list, alias="Policies")
    payment_types: list[PaymentType] = Field(default_factory=list, alias="PaymentTypes")


class ExpenseGroupConfigurations(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[ExpenseGroupConfiguration] = Field(default_factory=list, alias="Items")

    def expense_types(self) -> list[ExpenseType]:
        seen: dict[str, ExpenseType] = {}
        for group in self.items:
            for policy in group.policies:
                for expense_type in policy.expense_types:
                    seen.setdefault(expense_type.code, expense_type)
        return list(seen.values())

    def payment_types(self) -> list[PaymentType]:
        seen: dict[str, PaymentType] = {}
        for group in self.items:
            for payment_type in group.payment_types:
                seen.setdefault(payment_type.id, payment_type)
        return list(seen.values())


class ConcurLocation(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(alias="ID")
    name: str | None = Field(default=None, alias="Name")
    city: str | None = Field(default=None, alias="City")
    country: str | None = Field(default=None, alias="Country")
    iata_code: str | None = Field(default=None, alias="IATACode")


# ---------------------------------------------------------------------------
# v1.1 / image v1.0 XML
# ---------------------------------------------------------------------------

CARD_CHARGE_FIELDS = (
    "CardNumber",
    "ExpKey",
    "Merchant",
    "ExpName",
    "TransactionAmount",
    "TransactionCrnCode",
    "TransactionDate",
    "CardTransactionID",
    "PostedAmount",
)


class ReceiptImage(BaseModel):
    """Image v1.0 reference; the URL is presigned and short-lived."""

    id: str | None = None
    url: str | None = None


# ---------------------------------------------------------------------------
# Request parameters
# ---------------------------------------------------------------------------


class CreateReportParams(BaseModel):
    name: str
    purpose: str
    start_date: str


class CreateExpenseParams(BaseModel):
    transaction_date: str
    expense_type_code: str
    vendor_description: str
    transaction_amount: float
    currency_code: str
    business_purpose: str | None = None
    report_id: str | None = None
    payment_type_id: str | None = None
    payment_type_name: str | None = None
    location_id: str | None = None
    location_city: str | None = None
    comment: str | None = None
    description: str | None = None
    is_billable: bool | None = None
    is_personal: bool | None = None


class UpdateExpenseParams(BaseModel):
    transaction_date: str | None = None
    expense_type_code: str | None = None
    business_purpose: str | None = None
    vendor_description: str | None = None
    transaction_amount: float | None = None
    currency_code: str | None = None
    report_id: str | None = None
    location_id: str | None = None


class CreateItemizationParams(BaseModel):
    entry_id: str
    report_id: str
    report_owner_id: str
    expense_type_code: str
    transaction_date: str
    transaction_amount: float
    description: str | None = None
    comment: str | None = None


# ---------------------------------------------------------------------------
# Per diem
# ---------------------------------------------------------------------------

DayType = Literal["first", "last", "full"]


class PerDiemRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str
    aliases: tuple[str, ...] = ()
    country: str
    full_day: float
    partial_day: float
    is_default: bool = False


class PerDiemDayDetail(BaseModel):
    date: str
    day_type: DayType
    rate: float
    location: str


class PerDiemCalculation(BaseModel):
    location: str
    start_date: str
    end_date: str
    total_days: int
    full_days: int
    partial_days: int
    full_day_rate: float
    partial_day_rate: float
    total_amount: float
    breakdown: list[PerDiemDayDetail]


# ---------------------------------------------------------------------------
# TripIt
# ---------------------------------------------------------------------------


class Trip(BaseModel):
    id: str
    display_name: str
    start_date: str
    end_date: str
    primary_location: str
    is_past: bool


class FlightSegment(BaseModel):
    id: str | None = None
    confirmation_num: str | None = None
    airline: str
    flight_number: str
    departure_airport: str
    arrival_airport: str
    departure_time: str
    arrival_time: str


class HotelReservation(BaseModel):
    id: str | None = None
    confirmation_num: str | None = None
    hotel_name: str
    address: str | None = None
    check_in_date: str
    check_out_date: str
    room_type: str | None = None


class Activity(BaseModel):
    id: str | None = None
    display_name: str
    start_date: str
    end_date: str | None = None
    address: str | None = None


class TripDetails(BaseModel):
    id: str
    display_name: str
    start_date: str
    end_date: str
    primary_location: str
    description: str | None = None
    flights: list[FlightSegment] = Field(default_factory=list)
    hotels: list[HotelReservation] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
