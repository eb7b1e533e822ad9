"""DuesConfig ORM model: per-organization default monthly charge."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from treasury.models import Base, BaseModel


class DuesConfig(Base, BaseModel):
    """Default dues amount for an organization.

    Only consulted when new Dues are created; changing it never touches
    existing Dues rows.
    """

    __tablename__ = "dues_configs"

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="One config row per organization",
    )
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Default monthly dues in the smallest currency unit",
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")

    def __repr__(self) -> str:
        return f"<DuesConfig(org={self.organization_id}, amount={self.amount} {self.currency})>"


__all__ = ["DuesConfig"]
