"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from treasury.models.member import Member  # noqa: E402
from treasury.models.dues_config import DuesConfig  # noqa: E402
from treasury.models.dues import Dues, DuesStatus  # noqa: E402
from treasury.models.payment import Payment, PaymentMethod  # noqa: E402
from treasury.models.transaction import Transaction, TransactionType  # noqa: E402
from treasury.models.user_member_link import UserMemberLink  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "Member",
    "DuesConfig",
    "Dues",
    "DuesStatus",
    "Payment",
    "PaymentMethod",
    "Transaction",
    "TransactionType",
    "UserMemberLink",
]
