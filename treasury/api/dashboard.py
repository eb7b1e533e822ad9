"""Dashboard API routes."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.api.deps import Principal, get_organization_id, get_principal
from treasury.api.schemas import SummaryResponse
from treasury.services.db import get_async_session
from treasury.services.errors import ValidationError
from treasury.services.summary_service import FinancialSummaryService
from treasury.services.validation import to_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    start: datetime | None = Query(None, description="Inclusive lower bound"),
    end: datetime | None = Query(None, description="Exclusive upper bound"),
    principal: Principal = Depends(get_principal),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> SummaryResponse:
    """
    Financial summary of the organization.

    Income includes both INCOME transactions and dues payments. Personal
    arrears are those of the member linked to the calling user (zero when
    the user has no member link).

    Returns:
        200: Summary
        422: start is not before end
    """
    start, end = to_utc(start), to_utc(end)
    if start is not None and end is not None and start >= end:
        raise ValidationError("start must be before end", "start")

    summary = await FinancialSummaryService(session).get_summary(
        organization_id, start=start, end=end, user_id=principal.user_id
    )
    logger.debug(f"Dashboard summary served for user {principal.user_id}")
    return SummaryResponse.model_validate(summary)


__all__ = ["router"]
