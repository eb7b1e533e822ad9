"""Payment API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.api.deps import Principal, get_organization_id, require_manager
from treasury.api.schemas import DeleteResponse, PaymentResponse, RecordPaymentPayload
from treasury.models.payment import Payment
from treasury.services.db import get_async_session
from treasury.services.dues_service import DuesService
from treasury.services.status_classifier import classify

router = APIRouter(prefix="/api/payments", tags=["payments"])


async def _payment_response(service: DuesService, payment: Payment, organization_id: str):
    dues = await service.get_dues(payment.dues_id, organization_id)
    verdict = classify(dues, dues.payments)
    return PaymentResponse(
        id=payment.id,
        dues_id=payment.dues_id,
        member_id=payment.member_id,
        amount=payment.amount,
        method=payment.method,
        note=payment.note,
        paid_at=payment.paid_at,
        created_by_id=payment.created_by_id,
        dues_status=verdict.status,
        remaining_amount=verdict.remaining_amount,
    )


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payload: RecordPaymentPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> PaymentResponse:
    """
    Record a payment against a dues.

    Returns:
        201: Payment with the dues' refreshed status
        404: Dues not found in the organization
        422: Non-positive or non-integer amount
    """
    service = DuesService(session)
    payment = await service.record_payment(
        payload.dues_id,
        payload.amount,
        method=payload.method,
        note=payload.note,
        created_by_id=principal.user_id,
        paid_at=payload.paid_at,
        organization_id=principal.organization_id,
    )
    return await _payment_response(service, payment, principal.organization_id)


@router.get("/dues/{dues_id}", response_model=list[PaymentResponse])
async def list_payments(
    dues_id: int,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[PaymentResponse]:
    """Payments of a dues in recording order."""
    service = DuesService(session)
    dues = await service.get_dues(dues_id, organization_id)
    verdict = classify(dues, dues.payments)
    return [
        PaymentResponse(
            id=p.id,
            dues_id=p.dues_id,
            member_id=p.member_id,
            amount=p.amount,
            method=p.method,
            note=p.note,
            paid_at=p.paid_at,
            created_by_id=p.created_by_id,
            dues_status=verdict.status,
            remaining_amount=verdict.remaining_amount,
        )
        for p in dues.payments
    ]


@router.delete("/dues/{dues_id}", response_model=DeleteResponse)
async def delete_payments(
    dues_id: int,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> DeleteResponse:
    """Delete every payment of a dues, returning it to PENDING."""
    count = await DuesService(session).delete_payments(dues_id, principal.organization_id)
    return DeleteResponse(deleted=count > 0, deleted_payments=count)


__all__ = ["router"]
