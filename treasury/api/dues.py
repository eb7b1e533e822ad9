"""Dues API routes: issuing, listing, yearly grid, arrears and bulk changes."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.api.deps import Principal, get_organization_id, require_manager
from treasury.api.schemas import (
    BulkCounts,
    BulkFailureResponse,
    BulkItemResponse,
    BulkManagePayload,
    BulkPayload,
    BulkResponse,
    CreateDuesPayload,
    DeleteResponse,
    DuesConfigPayload,
    DuesConfigResponse,
    DuesResponse,
    IssueDuesPayload,
    IssueDuesResponse,
    MemberBrief,
    MemberYearStatusResponse,
    MonthCellResponse,
    OutstandingDuesResponse,
    UnpaidDuesResponse,
)
from treasury.models.dues import Dues
from treasury.services.arrears_service import ArrearsService
from treasury.services.bulk_service import BulkDuesService, BulkOperation, BulkResult
from treasury.services.db import get_async_session, get_session_factory
from treasury.services.dues_service import DuesService
from treasury.services.status_classifier import classify
from treasury.services.validation import MAX_YEAR, MIN_YEAR
from treasury.services.yearly_status_service import YearlyStatusService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dues"])


def dues_response(dues: Dues) -> DuesResponse:
    """Serialize dues with its status recomputed from payments."""
    verdict = classify(dues, dues.payments)
    return DuesResponse(
        id=dues.id,
        organization_id=dues.organization_id,
        member_id=dues.member_id,
        month=dues.month,
        year=dues.year,
        amount=dues.amount,
        status=verdict.status,
        total_paid=verdict.total_paid,
        remaining_amount=verdict.remaining_amount,
        created_at=dues.created_at,
    )


def bulk_response(result: BulkResult) -> BulkResponse:
    """Serialize a bulk result with per-class counts."""
    return BulkResponse(
        counts=BulkCounts(**result.counts()),
        created=[BulkItemResponse.model_validate(i) for i in result.created],
        deleted=[BulkItemResponse.model_validate(i) for i in result.deleted],
        paid=[BulkItemResponse.model_validate(i) for i in result.paid],
        failed=[
            BulkFailureResponse(
                month=f.item.month,
                year=f.item.year,
                operation=f.operation,
                reason=f.reason,
                message=f.message,
            )
            for f in result.failed
        ],
    )


# ---------------------------------------------------------------------------
# Dues config
# ---------------------------------------------------------------------------


@router.get("/dues-config", response_model=DuesConfigResponse)
async def get_dues_config(
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> DuesConfigResponse:
    """Current default dues amount (built-in default when never configured)."""
    config = await DuesService(session).get_dues_config(organization_id)
    return DuesConfigResponse.model_validate(config)


@router.put("/dues-config", response_model=DuesConfigResponse)
async def set_dues_config(
    payload: DuesConfigPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> DuesConfigResponse:
    """Set the default amount used for dues created from now on."""
    config = await DuesService(session).set_dues_config(
        principal.organization_id, payload.amount, payload.currency
    )
    return DuesConfigResponse.model_validate(config)


# ---------------------------------------------------------------------------
# Dues
# ---------------------------------------------------------------------------


@router.get("/dues", response_model=list[DuesResponse])
async def list_dues(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None),
    member_id: int | None = Query(None),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[DuesResponse]:
    """List dues, optionally filtered by period or member."""
    dues = await DuesService(session).list_dues(
        organization_id, month=month, year=year, member_id=member_id
    )
    return [dues_response(d) for d in dues]


@router.post("/dues", response_model=DuesResponse, status_code=status.HTTP_201_CREATED)
async def create_dues(
    payload: CreateDuesPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> DuesResponse:
    """
    Create dues for one member and month.

    Returns:
        201: Created dues
        404: Member not in the organization
        409: Dues already exist for (member, month, year)
        422: Invalid month, year or amount
    """
    dues = await DuesService(session).create_dues(
        principal.organization_id,
        payload.member_id,
        payload.month,
        payload.year,
        amount=payload.amount,
    )
    return dues_response(dues)


@router.post("/dues/issue", response_model=IssueDuesResponse, status_code=status.HTTP_201_CREATED)
async def issue_dues(
    payload: IssueDuesPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> IssueDuesResponse:
    """Create a month's dues for every active member that has none yet."""
    result = await DuesService(session).issue_for_all_members(
        principal.organization_id, payload.month, payload.year, amount=payload.amount
    )
    return IssueDuesResponse(
        month=result.month,
        year=result.year,
        amount=result.amount,
        created=len(result.created),
        skipped=len(result.skipped_member_ids),
        created_dues_ids=[d.id for d in result.created],
    )


@router.delete("/dues/{dues_id}", response_model=DeleteResponse)
async def delete_dues(
    dues_id: int,
    force: bool = Query(False, description="Also delete the dues' payments"),
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> DeleteResponse:
    """Delete dues; refused with 409 while payments exist unless force is set."""
    deleted_payments = await DuesService(session).delete_dues(
        dues_id, principal.organization_id, force=force
    )
    return DeleteResponse(deleted_payments=deleted_payments)


# ---------------------------------------------------------------------------
# Status and arrears
# ---------------------------------------------------------------------------


@router.get("/dues/yearly-status", response_model=list[MemberYearStatusResponse])
async def yearly_status(
    year: int = Query(..., ge=MIN_YEAR, le=MAX_YEAR),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[MemberYearStatusResponse]:
    """Per-member, per-month status grid; null months have no dues record."""
    grid = await YearlyStatusService(session).get_yearly_status(organization_id, year)
    return [
        MemberYearStatusResponse(
            member_id=row.member_id,
            member=MemberBrief.model_validate(row.member),
            year=row.year,
            monthly_status={
                month: MonthCellResponse.model_validate(cell) if cell is not None else None
                for month, cell in row.monthly_status.items()
            },
        )
        for row in grid
    ]


@router.get("/dues/outstanding/{member_id}", response_model=list[OutstandingDuesResponse])
async def outstanding_dues(
    member_id: int,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[OutstandingDuesResponse]:
    """A member's unpaid dues, oldest first."""
    outstanding = await ArrearsService(session).outstanding_dues(member_id, organization_id)
    return [OutstandingDuesResponse.model_validate(o) for o in outstanding]


@router.get("/dues/unpaid", response_model=list[UnpaidDuesResponse])
async def unpaid_dues(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=MIN_YEAR, le=MAX_YEAR),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[UnpaidDuesResponse]:
    """Issued dues of one month that are PENDING or PARTIAL."""
    unpaid = await ArrearsService(session).unpaid_for_month(organization_id, month, year)
    return [
        UnpaidDuesResponse(
            dues_id=u.dues.id,
            member=MemberBrief.model_validate(u.member) if u.member else None,
            month=u.dues.month,
            year=u.dues.year,
            dues_amount=u.dues.amount,
            total_paid=u.verdict.total_paid,
            remaining_amount=u.verdict.remaining_amount,
            status=u.verdict.status,
        )
        for u in unpaid
    ]


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


@router.post("/dues/bulk", response_model=BulkResponse)
async def bulk_dues(
    payload: BulkPayload,
    principal: Principal = Depends(require_manager),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> BulkResponse:
    """Apply one action (create, delete or pay) to the selected months.

    Per-month failures are reported in the body; the response is 200 unless
    the request itself is invalid or the member does not exist.
    """
    service = BulkDuesService(session_factory)
    selections = {
        BulkOperation.CREATE: "create_months",
        BulkOperation.DELETE: "delete_months",
        BulkOperation.PAY: "pay_months",
    }
    result = await service.manage(
        principal.organization_id,
        payload.member_id,
        payload.year,
        method=payload.method,
        note=payload.note,
        created_by_id=principal.user_id,
        **{selections[payload.action]: payload.selected_months},
    )
    return bulk_response(result)


@router.post("/dues/bulk/manage", response_model=BulkResponse)
async def bulk_manage(
    payload: BulkManagePayload,
    principal: Principal = Depends(require_manager),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> BulkResponse:
    """Create, delete and pay months of one member in a single request."""
    result = await BulkDuesService(session_factory).manage(
        principal.organization_id,
        payload.member_id,
        payload.year,
        create_months=payload.create_months,
        delete_months=payload.delete_months,
        pay_months=payload.pay_months,
        method=payload.method,
        note=payload.note,
        created_by_id=principal.user_id,
    )
    return bulk_response(result)


__all__ = ["router", "dues_response", "bulk_response"]
