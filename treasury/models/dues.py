"""Dues ORM model: one monthly charge owed by one member."""

from enum import Enum

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class DuesStatus(str, Enum):
    """Settlement status of a Dues record."""

    PENDING = "PENDING"
    """No payment recorded yet."""

    PARTIAL = "PARTIAL"
    """Some, but not all, of the amount has been paid."""

    PAID = "PAID"
    """Payments cover the amount (over-payment included)."""


class Dues(Base, BaseModel):
    """Model representing a single month's charge for a member.

    The natural key (member_id, month, year) is unique. ``amount`` is a
    snapshot of the organization's default at creation time.

    ``status`` is a cache of the classifier's verdict over this row's
    payments. Readers recompute it; writers go through
    ``treasury.services.status_classifier.reconcile_dues_status``.
    """

    __tablename__ = "dues"

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owning organization identifier",
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"),
        nullable=False,
        index=True,
        comment="Member owing this charge",
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False, comment="1 = January .. 12 = December")
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Charge in the smallest currency unit, snapshotted at creation",
    )
    status: Mapped[DuesStatus] = mapped_column(
        nullable=False,
        default=DuesStatus.PENDING,
        comment="Cached classifier status",
    )

    # Relationships
    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="dues",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="dues",
        order_by="Payment.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("member_id", "month", "year", name="uq_dues_member_month_year"),
        Index("idx_dues_org_period", "organization_id", "year", "month"),
    )

    def __repr__(self) -> str:
        return (
            f"<Dues(id={self.id}, member_id={self.member_id}, "
            f"period={self.year}-{self.month:02d}, amount={self.amount}, status={self.status})>"
        )


__all__ = ["Dues", "DuesStatus"]
