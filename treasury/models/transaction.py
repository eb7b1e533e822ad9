"""Transaction ORM model for income and expense entries outside dues."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from treasury.models import Base, BaseModel


class TransactionType(str, Enum):
    """Direction of a treasury transaction."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Transaction(Base, BaseModel):
    """Model representing a standalone income or expense entry.

    Transactions have their own lifecycle and are never linked to dues:
    - Donations, event proceeds: INCOME
    - Supplies, utilities, honoraria: EXPENSE

    Dues payments are recorded as Payment rows, not as transactions; the
    dashboard summary adds both into one income figure.
    """

    __tablename__ = "transactions"

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owning organization identifier",
    )
    type: Mapped[TransactionType] = mapped_column(nullable=False)
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Transaction amount in the smallest currency unit",
    )
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Free-form category used by the dashboard breakdown",
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_org_type", "organization_id", "type"),
        Index("idx_transaction_occurred_at", "occurred_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, org={self.organization_id}, type={self.type}, "
            f"amount={self.amount}, occurred_at={self.occurred_at})>"
        )


__all__ = ["Transaction", "TransactionType"]
