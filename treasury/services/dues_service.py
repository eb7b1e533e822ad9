"""Dues service for issuing charges and recording payments.

Provides methods for:
- Reading and updating the organization's default dues amount (DuesConfig)
- Creating dues for one member or for every active member
- Recording and deleting payments against a dues
- Deleting dues (refused while payments exist unless forced)

Every change to a dues' payments ends with ``reconcile_dues_status`` so the
cached status column has exactly one writer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from treasury.models.dues import Dues, DuesStatus
from treasury.models.dues_config import DuesConfig
from treasury.models.member import Member
from treasury.models.payment import Payment, PaymentMethod
from treasury.services.config import settings
from treasury.services.errors import ConflictError, NotFoundError
from treasury.services.member_service import MemberService
from treasury.services.status_classifier import reconcile_dues_status
from treasury.services.validation import (
    to_utc,
    validate_amount,
    validate_enum,
    validate_month,
    validate_year,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuesConfigView:
    """Effective dues configuration; is_default marks the synthetic fallback."""

    organization_id: str
    amount: int
    currency: str
    is_default: bool = False


@dataclass(frozen=True)
class IssueResult:
    """Outcome of issuing a month's dues to all active members."""

    month: int
    year: int
    amount: int
    created: list[Dues]
    skipped_member_ids: list[int]


class DuesService:
    """Dues and payment operations for one organization's ledger."""

    def __init__(self, session: AsyncSession):
        """Initialize with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    # ------------------------------------------------------------------
    # DuesConfig
    # ------------------------------------------------------------------

    async def get_dues_config(self, organization_id: str) -> DuesConfigView:
        """Get the organization's dues config, or the built-in default.

        A missing config is not an error: the DEFAULT_DUES_AMOUNT setting
        (50000) and DEFAULT_CURRENCY are returned instead.
        """
        config = await self._find_config(organization_id)
        if config is None:
            return DuesConfigView(
                organization_id=organization_id,
                amount=settings.default_dues_amount,
                currency=settings.default_currency,
                is_default=True,
            )
        return DuesConfigView(
            organization_id=organization_id, amount=config.amount, currency=config.currency
        )

    async def get_default_amount(self, organization_id: str) -> int:
        """Amount snapshotted into newly created dues."""
        return (await self.get_dues_config(organization_id)).amount

    async def set_dues_config(
        self, organization_id: str, amount: int, currency: str | None = None
    ) -> DuesConfigView:
        """Create or update the organization's default dues amount.

        Existing dues keep their snapshotted amount.
        """
        validate_amount(amount)
        config = await self._find_config(organization_id)
        if config is None:
            config = DuesConfig(
                organization_id=organization_id,
                amount=amount,
                currency=currency or settings.default_currency,
            )
            self.session.add(config)
        else:
            config.amount = amount
            if currency:
                config.currency = currency
        await self.session.commit()
        logger.info(f"Dues config for org {organization_id} set to {amount} {config.currency}")
        return DuesConfigView(
            organization_id=organization_id, amount=config.amount, currency=config.currency
        )

    async def _find_config(self, organization_id: str) -> DuesConfig | None:
        stmt = select(DuesConfig).where(DuesConfig.organization_id == organization_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Dues
    # ------------------------------------------------------------------

    async def find_dues(self, member_id: int, month: int, year: int) -> Dues | None:
        """Find dues by natural key, with payments loaded."""
        stmt = (
            select(Dues)
            .options(selectinload(Dues.payments))
            .where(Dues.member_id == member_id, Dues.month == month, Dues.year == year)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_dues(self, dues_id: int, organization_id: str | None = None) -> Dues:
        """Get dues by id with payments loaded.

        Raises:
            NotFoundError: If the dues does not exist (or is in another organization)
        """
        stmt = select(Dues).options(selectinload(Dues.payments)).where(Dues.id == dues_id)
        result = await self.session.execute(stmt)
        dues = result.scalar_one_or_none()
        if dues is None or (
            organization_id is not None and dues.organization_id != organization_id
        ):
            raise NotFoundError(f"Dues {dues_id} not found", "dues_id")
        return dues

    async def list_dues(
        self,
        organization_id: str,
        month: int | None = None,
        year: int | None = None,
        member_id: int | None = None,
    ) -> list[Dues]:
        """List dues of an organization, oldest period first, payments loaded."""
        stmt = (
            select(Dues)
            .options(selectinload(Dues.payments))
            .where(Dues.organization_id == organization_id)
        )
        if month is not None:
            stmt = stmt.where(Dues.month == validate_month(month))
        if year is not None:
            stmt = stmt.where(Dues.year == validate_year(year))
        if member_id is not None:
            stmt = stmt.where(Dues.member_id == member_id)
        stmt = stmt.order_by(Dues.year, Dues.month, Dues.member_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_dues(
        self,
        organization_id: str,
        member_id: int,
        month: int,
        year: int,
        amount: int | None = None,
    ) -> Dues:
        """Create a dues for one member and period.

        Args:
            organization_id: Organization issuing the charge
            member_id: Member being charged
            month: 1..12
            year: Calendar year
            amount: Charge; defaults to the organization's current dues config

        Returns:
            Created Dues (status PENDING)

        Raises:
            ValidationError: On bad month, year or amount
            NotFoundError: If the member is not in the organization
            ConflictError: If dues already exist for (member, month, year)
        """
        validate_month(month)
        validate_year(year)
        if amount is None:
            amount = await self.get_default_amount(organization_id)
        validate_amount(amount)

        await MemberService(self.session).get_member(member_id, organization_id)

        existing = await self.find_dues(member_id, month, year)
        if existing is not None:
            logger.warning(
                f"Duplicate dues rejected: member={member_id} period={year}-{month:02d} "
                f"(existing id={existing.id})"
            )
            raise ConflictError(
                f"Dues already exist for member {member_id} in {year}-{month:02d}", "month"
            )

        dues = Dues(
            organization_id=organization_id,
            member_id=member_id,
            month=month,
            year=year,
            amount=amount,
            status=DuesStatus.PENDING,
            payments=[],
        )
        self.session.add(dues)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # Concurrent creator won the unique (member_id, month, year) index
            await self.session.rollback()
            logger.warning(f"Dues natural key collision for member={member_id} {year}-{month:02d}")
            raise ConflictError(
                f"Dues already exist for member {member_id} in {year}-{month:02d}", "month"
            ) from e

        logger.info(
            f"Created dues {dues.id}: member={member_id} period={year}-{month:02d} amount={amount}"
        )
        return dues

    async def issue_for_all_members(
        self,
        organization_id: str,
        month: int,
        year: int,
        amount: int | None = None,
    ) -> IssueResult:
        """Create a period's dues for every active member lacking one.

        Runs as one transaction: either every missing dues is created or none.
        Members that already have dues for the period are skipped untouched.
        """
        validate_month(month)
        validate_year(year)
        if amount is None:
            amount = await self.get_default_amount(organization_id)
        validate_amount(amount)

        members = await MemberService(self.session).list_members(organization_id)
        stmt = select(Dues.member_id).where(
            Dues.organization_id == organization_id, Dues.month == month, Dues.year == year
        )
        already = set((await self.session.execute(stmt)).scalars().all())

        created: list[Dues] = []
        skipped: list[int] = []
        for member in members:
            if member.id in already:
                skipped.append(member.id)
                continue
            dues = Dues(
                organization_id=organization_id,
                member_id=member.id,
                month=month,
                year=year,
                amount=amount,
                status=DuesStatus.PENDING,
                payments=[],
            )
            self.session.add(dues)
            created.append(dues)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(
                f"Dues for {year}-{month:02d} were created concurrently; retry the issue", "month"
            ) from e

        logger.info(
            f"Issued dues {year}-{month:02d} for org {organization_id}: "
            f"created={len(created)} skipped={len(skipped)}"
        )
        return IssueResult(
            month=month, year=year, amount=amount, created=created, skipped_member_ids=skipped
        )

    async def delete_dues(
        self, dues_id: int, organization_id: str | None = None, force: bool = False
    ) -> int:
        """Delete a dues.

        Args:
            dues_id: Dues to delete
            organization_id: Owning organization check
            force: Delete the dues' payments first instead of refusing

        Returns:
            Number of payments deleted along with the dues

        Raises:
            NotFoundError: If the dues does not exist
            ConflictError: If payments exist and force is False
        """
        dues = await self.get_dues(dues_id, organization_id)
        payment_count = len(dues.payments)
        if payment_count and not force:
            raise ConflictError(
                f"Dues {dues_id} has {payment_count} payment(s); delete them first", "dues_id"
            )

        if payment_count:
            dues.payments.clear()
            await self.session.flush()
        await self.session.delete(dues)
        await self.session.commit()
        logger.info(f"Deleted dues {dues_id} (with {payment_count} payment(s))")
        return payment_count

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def record_payment(
        self,
        dues_id: int,
        amount: int,
        method: PaymentMethod | str = PaymentMethod.CASH,
        note: str | None = None,
        created_by_id: str | None = None,
        paid_at: datetime | None = None,
        organization_id: str | None = None,
    ) -> Payment:
        """Record a payment against a dues and refresh its status.

        No upper bound is enforced: paying more than the remaining amount
        leaves the dues PAID with a surplus visible only in its payments.

        Raises:
            ValidationError: On non-positive amount or unknown method
            NotFoundError: If the dues does not exist
        """
        validate_amount(amount)
        method = validate_enum(PaymentMethod, method, "method")
        dues = await self.get_dues(dues_id, organization_id)

        payment = Payment(
            member_id=dues.member_id,
            amount=amount,
            method=method,
            note=note,
            paid_at=to_utc(paid_at) or datetime.now(timezone.utc),
            created_by_id=created_by_id,
        )
        dues.payments.append(payment)
        verdict = reconcile_dues_status(dues)
        await self.session.commit()

        logger.info(
            f"Recorded payment {payment.id} of {amount} ({method.value}) on dues {dues_id}: "
            f"status={verdict.status.value} remaining={verdict.remaining_amount}"
        )
        return payment

    async def delete_payments(self, dues_id: int, organization_id: str | None = None) -> int:
        """Delete every payment of a dues, returning it to PENDING.

        Returns:
            Number of payments deleted
        """
        dues = await self.get_dues(dues_id, organization_id)
        count = len(dues.payments)
        dues.payments.clear()
        reconcile_dues_status(dues)
        await self.session.commit()
        logger.info(f"Deleted {count} payment(s) from dues {dues_id}")
        return count

    async def list_payments(self, dues_id: int, organization_id: str | None = None) -> list[Payment]:
        """Payments of a dues in recording order."""
        dues = await self.get_dues(dues_id, organization_id)
        return list(dues.payments)


async def members_by_id(session: AsyncSession, member_ids: set[int]) -> dict[int, Member]:
    """Load members keyed by id (used to decorate dues listings)."""
    if not member_ids:
        return {}
    result = await session.execute(select(Member).where(Member.id.in_(member_ids)))
    return {m.id: m for m in result.scalars().all()}


__all__ = ["DuesService", "DuesConfigView", "IssueResult", "members_by_id"]
