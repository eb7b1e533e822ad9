"""Payment ORM model: a settlement recorded against one Dues."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class PaymentMethod(str, Enum):
    """How a payment was made."""

    CASH = "CASH"
    TRANSFER = "TRANSFER"
    E_WALLET = "E_WALLET"


class Payment(Base, BaseModel):
    """Model representing a full or partial payment of a Dues.

    ``member_id`` duplicates the owning Dues' member for query convenience and
    is always copied from the Dues when the payment is recorded.
    """

    __tablename__ = "payments"

    dues_id: Mapped[int] = mapped_column(
        ForeignKey("dues.id"),
        nullable=False,
        index=True,
        comment="Dues being settled",
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"),
        nullable=False,
        index=True,
        comment="Copy of dues.member_id",
    )
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Paid amount in the smallest currency unit (> 0)",
    )
    method: Mapped[PaymentMethod] = mapped_column(nullable=False, default=PaymentMethod.CASH)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    created_by_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Principal that recorded the payment",
    )

    # Relationships
    dues: Mapped["Dues"] = relationship(  # noqa: F821
        "Dues",
        back_populates="payments",
    )

    __table_args__ = (Index("idx_payment_dues_paid_at", "dues_id", "paid_at"),)

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, dues_id={self.dues_id}, amount={self.amount}, "
            f"method={self.method})>"
        )


__all__ = ["Payment", "PaymentMethod"]
