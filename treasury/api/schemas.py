"""Pydantic request and response schemas.

Amounts are JSON integers in the smallest currency unit; floats are rejected.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from treasury.models.dues import DuesStatus
from treasury.models.payment import PaymentMethod
from treasury.models.transaction import TransactionType
from treasury.services.bulk_service import BulkOperation
from treasury.services.validation import MAX_YEAR, MIN_YEAR

Amount = Annotated[StrictInt, Field(gt=0, description="Integer amount in the smallest currency unit")]
Month = Annotated[int, Field(ge=1, le=12, description="1 = January .. 12 = December")]
Year = Annotated[int, Field(ge=MIN_YEAR, le=MAX_YEAR)]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


class MemberBrief(BaseModel):
    """Member identity embedded in other payloads."""

    id: int
    full_name: str
    email: str | None = None
    phone: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(MemberBrief):
    organization_id: str
    is_active: bool
    joined_at: datetime


class CreateMemberPayload(BaseModel):
    """Request payload for POST /api/members."""

    full_name: str = Field(..., min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    is_active: bool = True


class LinkUserPayload(BaseModel):
    """Request payload for POST /api/members/{member_id}/link."""

    user_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Dues config
# ---------------------------------------------------------------------------


class DuesConfigPayload(BaseModel):
    amount: Amount
    currency: str | None = Field(None, min_length=3, max_length=3)


class DuesConfigResponse(BaseModel):
    organization_id: str
    amount: int
    currency: str
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Dues and payments
# ---------------------------------------------------------------------------


class CreateDuesPayload(BaseModel):
    """Request payload for POST /api/dues."""

    member_id: int
    month: Month
    year: Year
    amount: Amount | None = Field(None, description="Defaults to the organization's dues config")


class IssueDuesPayload(BaseModel):
    """Request payload for POST /api/dues/issue (all active members)."""

    month: Month
    year: Year
    amount: Amount | None = None


class DuesResponse(BaseModel):
    """Dues with status recomputed from its payments."""

    id: int
    organization_id: str
    member_id: int
    month: int
    year: int
    amount: int
    status: DuesStatus
    total_paid: int
    remaining_amount: int
    created_at: datetime


class IssueDuesResponse(BaseModel):
    month: int
    year: int
    amount: int
    created: int
    skipped: int
    created_dues_ids: list[int]


class DeleteResponse(BaseModel):
    deleted: bool = True
    deleted_payments: int = 0


class RecordPaymentPayload(BaseModel):
    """Request payload for POST /api/payments."""

    dues_id: int
    amount: Amount
    method: PaymentMethod = PaymentMethod.CASH
    note: str | None = Field(None, max_length=1000)
    paid_at: datetime | None = None


class PaymentResponse(BaseModel):
    id: int
    dues_id: int
    member_id: int
    amount: int
    method: PaymentMethod
    note: str | None = None
    paid_at: datetime
    created_by_id: str | None = None
    dues_status: DuesStatus
    remaining_amount: int


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


class BulkPayload(BaseModel):
    """Request payload for POST /api/dues/bulk: one action over selected months."""

    member_id: int
    year: Year
    selected_months: list[int] = Field(..., min_length=1)
    action: BulkOperation
    method: PaymentMethod = PaymentMethod.CASH
    note: str | None = Field(None, max_length=1000)


class BulkManagePayload(BaseModel):
    """Request payload for POST /api/dues/bulk/manage: mixed selections."""

    member_id: int
    year: Year
    create_months: list[int] = Field(default_factory=list)
    delete_months: list[int] = Field(default_factory=list)
    pay_months: list[int] = Field(default_factory=list)
    method: PaymentMethod = PaymentMethod.CASH
    note: str | None = Field(None, max_length=1000)


class BulkItemResponse(BaseModel):
    month: int
    year: int
    dues_id: int | None = None
    amount: int | None = None

    model_config = ConfigDict(from_attributes=True)


class BulkFailureResponse(BaseModel):
    month: int
    year: int
    operation: BulkOperation
    reason: str
    message: str


class BulkCounts(BaseModel):
    created: int
    deleted: int
    paid: int
    failed: int


class BulkResponse(BaseModel):
    counts: BulkCounts
    created: list[BulkItemResponse]
    deleted: list[BulkItemResponse]
    paid: list[BulkItemResponse]
    failed: list[BulkFailureResponse]


# ---------------------------------------------------------------------------
# Status and arrears
# ---------------------------------------------------------------------------


class MonthCellResponse(BaseModel):
    dues_id: int
    status: DuesStatus
    dues_amount: int
    total_paid: int
    remaining_amount: int

    model_config = ConfigDict(from_attributes=True)


class MemberYearStatusResponse(BaseModel):
    """One grid row; a null month means no dues was issued."""

    member_id: int
    member: MemberBrief
    year: int
    monthly_status: dict[int, MonthCellResponse | None]


class OutstandingDuesResponse(BaseModel):
    dues_id: int
    year: int
    month: int
    amount: int
    total_paid: int
    remaining_amount: int
    status: DuesStatus

    model_config = ConfigDict(from_attributes=True)


class UnpaidDuesResponse(BaseModel):
    dues_id: int
    member: MemberBrief | None
    month: int
    year: int
    dues_amount: int
    total_paid: int
    remaining_amount: int
    status: DuesStatus


class HistoryEntryResponse(BaseModel):
    year: int
    month: int
    status: DuesStatus
    amount: int
    paid_amount: int
    has_record: bool
    dues_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberPaymentSummaryResponse(BaseModel):
    paid_amount: int
    unpaid_amount: int
    total_dues: int
    paid_dues: int
    unpaid_dues: int

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Transactions and dashboard
# ---------------------------------------------------------------------------


class CreateTransactionPayload(BaseModel):
    """Request payload for POST /api/transactions."""

    type: TransactionType
    amount: Amount
    category: str | None = Field(None, max_length=100)
    occurred_at: datetime | None = None
    note: str | None = Field(None, max_length=1000)


class TransactionResponse(BaseModel):
    id: int
    organization_id: str
    type: TransactionType
    amount: int
    category: str | None = None
    occurred_at: datetime
    note: str | None = None
    created_by_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ArrearsPointResponse(BaseModel):
    year: int
    month: int
    unpaid_amount: int
    issued_unpaid_amount: int

    model_config = ConfigDict(from_attributes=True)


class MonthlyTotalsResponse(BaseModel):
    year: int
    month: int
    income: int
    expense: int
    net: int

    model_config = ConfigDict(from_attributes=True)


class CategoryTotalResponse(BaseModel):
    type: TransactionType
    category: str
    amount: int
    count: int

    model_config = ConfigDict(from_attributes=True)


class SummaryResponse(BaseModel):
    """Response schema for GET /api/dashboard/summary."""

    income: int
    expense: int
    balance: int
    transaction_income: int
    dues_income: int
    total_unpaid_amount: int
    personal_unpaid_amount: int
    personal_unpaid_months: int
    default_dues_amount: int
    monthly_arrears: list[ArrearsPointResponse]
    monthly_breakdown: list[MonthlyTotalsResponse]
    category_breakdown: list[CategoryTotalResponse]
    monthly_trend: list[MonthlyTotalsResponse]
    recent_transactions: list[TransactionResponse]

    model_config = ConfigDict(from_attributes=True)
