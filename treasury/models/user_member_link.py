"""Link between an authenticated user and their member record."""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class UserMemberLink(Base, BaseModel):
    """Maps a login user to the member they are within one organization."""

    __tablename__ = "user_member_links"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False)

    member: Mapped["Member"] = relationship("Member")  # noqa: F821

    __table_args__ = (
        Index("idx_user_member_link_user_org", "user_id", "organization_id", unique=True),
    )


__all__ = ["UserMemberLink"]
