"""Transaction API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.api.deps import Principal, get_organization_id, require_manager
from treasury.api.schemas import CreateTransactionPayload, DeleteResponse, TransactionResponse
from treasury.services.db import get_async_session
from treasury.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: CreateTransactionPayload,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> TransactionResponse:
    tx = await TransactionService(session).create_transaction(
        principal.organization_id,
        payload.type,
        payload.amount,
        category=payload.category,
        occurred_at=payload.occurred_at,
        note=payload.note,
        created_by_id=principal.user_id,
    )
    return TransactionResponse.model_validate(tx)


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(
    start: datetime | None = Query(None, description="Inclusive lower bound"),
    end: datetime | None = Query(None, description="Exclusive upper bound"),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_async_session),
) -> list[TransactionResponse]:
    """Transactions newest first."""
    transactions = await TransactionService(session).list_transactions(
        organization_id, start=start, end=end
    )
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.delete("/{transaction_id}", response_model=DeleteResponse)
async def delete_transaction(
    transaction_id: int,
    principal: Principal = Depends(require_manager),
    session: AsyncSession = Depends(get_async_session),
) -> DeleteResponse:
    await TransactionService(session).delete_transaction(transaction_id, principal.organization_id)
    return DeleteResponse()


__all__ = ["router"]
