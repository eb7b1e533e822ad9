"""Member ORM model: a person owing dues within one organization."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class Member(Base, BaseModel):
    """Model representing a member of an organization.

    Members are never hard-deleted by the ledger engine; deactivation
    (is_active=False) removes them from grids and arrears projections while
    their historical dues and payments stay intact.
    """

    __tablename__ = "members"

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owning organization identifier",
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Member display name",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive members are excluded from grids and projections",
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    dues: Mapped[list["Dues"]] = relationship(  # noqa: F821
        "Dues",
        back_populates="member",
    )

    __table_args__ = (Index("idx_member_org_active", "organization_id", "is_active"),)

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, full_name={self.full_name!r}, org={self.organization_id})>"


__all__ = ["Member"]
