"""Member API routes: records, user links and payment history."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.api.deps import Principal, get_organization_id, require_manager
from treasury.api.schemas import (
    CreateMemberPayload,
    HistoryEntryResponse,
    LinkUserPayload,
    MemberPaymentSummaryResponse,
    MemberResponse,
)
from treasury.services.arrears_service import ArrearsService
from treasury.services.db import get_async_session
from treasury.services.member_service import MemberService

router = APIRouter(prefix="/api/members", tags=["members"])


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: CreateMemberPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> MemberResponse:
    member = await MemberService(session).create_member(
        principal.organization_id,
        payload.full_name,
        email=payload.email,
        phone=payload.phone,
        is_active=payload.is_active,
    )
    return MemberResponse.model_validate(member)


@router.get("", response_model=list[MemberResponse])
async def list_members(
    active_only: bool = Query(True),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[MemberResponse]:
    members = await MemberService(session).list_members(organization_id, active_only=active_only)
    return [MemberResponse.model_validate(m) for m in members]


@router.post("/{member_id}/link", status_code=status.HTTP_201_CREATED)
async def link_user(
    member_id: int,
    payload: LinkUserPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    """Link a login user to this member (409 if the user is already linked)."""
    link = await MemberService(session).link_user(
        payload.user_id, principal.organization_id, member_id
    )
    return {"user_id": link.user_id, "member_id": link.member_id}


@router.get("/{member_id}/payment-summary", response_model=MemberPaymentSummaryResponse)
async def payment_summary(
    member_id: int,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> MemberPaymentSummaryResponse:
    summary = await ArrearsService(session).member_payment_summary(member_id, organization_id)
    return MemberPaymentSummaryResponse.model_validate(summary)


@router.get("/{member_id}/payment-history", response_model=list[HistoryEntryResponse])
async def payment_history(
    member_id: int,
    months: int = Query(12, ge=1, le=120),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[HistoryEntryResponse]:
    """Last N months, newest first; months without dues are projected PENDING."""
    history = await ArrearsService(session).member_payment_history(
        member_id, organization_id, months=months
    )
    return [HistoryEntryResponse.model_validate(h) for h in history]


__all__ = ["router"]
