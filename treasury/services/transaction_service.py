"""Income and expense transactions outside the dues ledger."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.models.transaction import Transaction, TransactionType
from treasury.services.errors import NotFoundError
from treasury.services.validation import to_utc, validate_amount, validate_enum

logger = logging.getLogger(__name__)


class TransactionService:
    """Create and query an organization's transactions."""

    def __init__(self, session: AsyncSession):
        """Initialize with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    async def create_transaction(
        self,
        organization_id: str,
        type: TransactionType | str,
        amount: int,
        category: str | None = None,
        occurred_at: datetime | None = None,
        note: str | None = None,
        created_by_id: str | None = None,
    ) -> Transaction:
        """Record an income or expense.

        Raises:
            ValidationError: On unknown type or non-positive amount
        """
        tx_type = validate_enum(TransactionType, type, "type")
        validate_amount(amount)

        tx = Transaction(
            organization_id=organization_id,
            type=tx_type,
            amount=amount,
            category=(category or "").strip() or None,
            occurred_at=to_utc(occurred_at) or datetime.now(timezone.utc),
            note=note,
            created_by_id=created_by_id,
        )
        self.session.add(tx)
        await self.session.commit()
        logger.info(
            f"Recorded {tx_type.value} transaction {tx.id} of {amount} for org {organization_id}"
        )
        return tx

    async def list_transactions(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        """Transactions newest first, optionally within [start, end)."""
        start, end = to_utc(start), to_utc(end)
        stmt = select(Transaction).where(Transaction.organization_id == organization_id)
        if start is not None:
            stmt = stmt.where(Transaction.occurred_at >= start)
        if end is not None:
            stmt = stmt.where(Transaction.occurred_at < end)
        stmt = stmt.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_transaction(self, transaction_id: int, organization_id: str) -> None:
        """Delete one transaction.

        Raises:
            NotFoundError: If it does not exist in the organization
        """
        tx = await self.session.get(Transaction, transaction_id)
        if tx is None or tx.organization_id != organization_id:
            raise NotFoundError(f"Transaction {transaction_id} not found", "transaction_id")
        await self.session.delete(tx)
        await self.session.commit()
        logger.info(f"Deleted transaction {transaction_id} from org {organization_id}")


__all__ = ["TransactionService"]
