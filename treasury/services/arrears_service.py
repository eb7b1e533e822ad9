"""Arrears aggregation across members, months and years.

Two notions of "unpaid" are reported side by side:

- Issued arrears: remaining amounts of existing PENDING/PARTIAL dues. A month
  without a dues row contributes nothing.
- Projected arrears: issued arrears plus, for every active member and every
  month without a dues row, the organization's current default amount as an
  implied charge.

The organization total, personal totals and outstanding lists are issued
arrears. The trailing series and member payment history report both.

Statuses are always recomputed from payments; the cached Dues.status column
is never used as a filter here.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from treasury.models.dues import Dues, DuesStatus
from treasury.models.member import Member
from treasury.services.config import settings
from treasury.services.dues_service import DuesService, members_by_id
from treasury.services.member_service import MemberService
from treasury.services.status_classifier import DuesStatusResult, classify
from treasury.services.validation import (
    utc_today,
    validate_month,
    validate_window,
    validate_year,
)

logger = logging.getLogger(__name__)

Period = tuple[int, int]
"""(year, month) pair; compares chronologically."""


@dataclass(frozen=True)
class UnpaidTotal:
    """Sum of remaining amounts and how many dues contributed."""

    unpaid_amount: int
    unpaid_months: int


@dataclass(frozen=True)
class ArrearsPoint:
    """One month of the trailing arrears series."""

    year: int
    month: int
    unpaid_amount: int
    """Projected: missing dues rows count as the default amount."""
    issued_unpaid_amount: int
    """Issued only: missing dues rows count as nothing."""


@dataclass(frozen=True)
class OutstandingDues:
    """A dues with money still owed."""

    dues_id: int
    year: int
    month: int
    amount: int
    total_paid: int
    remaining_amount: int
    status: DuesStatus


@dataclass(frozen=True)
class MemberPaymentSummary:
    """Paid/unpaid totals over all of a member's dues."""

    paid_amount: int
    unpaid_amount: int
    total_dues: int
    paid_dues: int
    unpaid_dues: int


@dataclass(frozen=True)
class HistoryEntry:
    """One month of a member's payment history."""

    year: int
    month: int
    status: DuesStatus
    amount: int
    paid_amount: int
    has_record: bool
    dues_id: int | None = None


@dataclass(frozen=True)
class UnpaidDues:
    """An unpaid dues with its member, for period reports."""

    dues: Dues
    member: Member | None
    verdict: DuesStatusResult


def trailing_periods(as_of: date, count: int) -> list[Period]:
    """Last ``count`` calendar months ending with as_of's month, oldest first."""
    periods = []
    year, month = as_of.year, as_of.month
    for _ in range(count):
        periods.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    periods.reverse()
    return periods


def sum_unpaid(dues: Iterable[Dues]) -> UnpaidTotal:
    """Sum remaining amounts over dues classified PENDING or PARTIAL.

    Args:
        dues: Dues with payments loaded

    Returns:
        UnpaidTotal of remaining amount and number of unpaid dues
    """
    amount = 0
    count = 0
    for d in dues:
        verdict = classify(d, d.payments)
        if verdict.is_unpaid:
            amount += verdict.remaining_amount
            count += 1
    return UnpaidTotal(unpaid_amount=amount, unpaid_months=count)


def _period_bounds(start: Period | None, end: Period | None):
    clauses = []
    if start is not None:
        year, month = start
        clauses.append(or_(Dues.year > year, and_(Dues.year == year, Dues.month >= month)))
    if end is not None:
        year, month = end
        clauses.append(or_(Dues.year < year, and_(Dues.year == year, Dues.month <= month)))
    return clauses


class ArrearsService:
    """Aggregate unpaid dues for an organization or a member."""

    def __init__(self, session: AsyncSession):
        """Initialize with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    async def _load_dues(self, *criteria) -> list[Dues]:
        stmt = select(Dues).options(selectinload(Dues.payments)).where(*criteria)
        stmt = stmt.order_by(Dues.year, Dues.month, Dues.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def organization_unpaid_total(
        self,
        organization_id: str,
        start: Period | None = None,
        end: Period | None = None,
    ) -> UnpaidTotal:
        """Issued arrears of the whole organization.

        Args:
            organization_id: Organization to total
            start: Inclusive (year, month) lower bound, all history when None
            end: Inclusive (year, month) upper bound, no limit when None
        """
        dues = await self._load_dues(
            Dues.organization_id == organization_id, *_period_bounds(start, end)
        )
        return sum_unpaid(dues)

    async def personal_unpaid(self, member_id: int, organization_id: str | None = None) -> UnpaidTotal:
        """Issued arrears of one member and the number of unpaid months."""
        criteria = [Dues.member_id == member_id]
        if organization_id is not None:
            criteria.append(Dues.organization_id == organization_id)
        return sum_unpaid(await self._load_dues(*criteria))

    async def personal_unpaid_for_user(self, user_id: str, organization_id: str) -> UnpaidTotal:
        """Issued arrears of the member linked to a login user; zero when unlinked."""
        link = await MemberService(self.session).get_link(user_id, organization_id)
        if link is None:
            return UnpaidTotal(unpaid_amount=0, unpaid_months=0)
        return await self.personal_unpaid(link.member_id, organization_id)

    async def trailing_arrears(
        self,
        organization_id: str,
        months: int | None = None,
        as_of: date | None = None,
    ) -> list[ArrearsPoint]:
        """Arrears per month over the last N months, oldest first.

        Args:
            organization_id: Organization to report
            months: Window length (default: ARREARS_WINDOW_MONTHS setting)
            as_of: Date whose month is the last point (default: today in UTC)
        """
        if months is None:
            months = settings.arrears_window_months
        periods = trailing_periods(as_of or utc_today(), validate_window(months))
        default_amount = await DuesService(self.session).get_default_amount(organization_id)
        members = await MemberService(self.session).list_members(organization_id)
        member_ids = {m.id for m in members}

        dues = await self._load_dues(
            Dues.organization_id == organization_id,
            *_period_bounds(periods[0], periods[-1]),
        )
        by_key = {(d.member_id, d.year, d.month): d for d in dues if d.member_id in member_ids}

        series = []
        for year, month in periods:
            projected = 0
            issued = 0
            for member_id in member_ids:
                d = by_key.get((member_id, year, month))
                if d is None:
                    projected += default_amount
                    continue
                verdict = classify(d, d.payments)
                if verdict.is_unpaid:
                    projected += verdict.remaining_amount
                    issued += verdict.remaining_amount
            series.append(
                ArrearsPoint(
                    year=year, month=month, unpaid_amount=projected, issued_unpaid_amount=issued
                )
            )
        return series

    async def outstanding_dues(
        self, member_id: int, organization_id: str | None = None
    ) -> list[OutstandingDues]:
        """A member's dues with a positive remaining amount, oldest first."""
        if organization_id is not None:
            await MemberService(self.session).get_member(member_id, organization_id)
        outstanding = []
        for d in await self._load_dues(Dues.member_id == member_id):
            verdict = classify(d, d.payments)
            if verdict.remaining_amount > 0:
                outstanding.append(
                    OutstandingDues(
                        dues_id=d.id,
                        year=d.year,
                        month=d.month,
                        amount=d.amount,
                        total_paid=verdict.total_paid,
                        remaining_amount=verdict.remaining_amount,
                        status=verdict.status,
                    )
                )
        return outstanding

    async def member_payment_summary(
        self, member_id: int, organization_id: str | None = None
    ) -> MemberPaymentSummary:
        """Paid and unpaid totals over all of a member's dues.

        A fully paid dues contributes its amount (not its over-payment) to
        paid_amount; an unpaid one contributes what was paid so far.
        """
        if organization_id is not None:
            await MemberService(self.session).get_member(member_id, organization_id)
        dues = await self._load_dues(Dues.member_id == member_id)

        paid_amount = unpaid_amount = paid_dues = unpaid_dues = 0
        for d in dues:
            verdict = classify(d, d.payments)
            if verdict.is_unpaid:
                paid_amount += verdict.total_paid
                unpaid_amount += verdict.remaining_amount
                unpaid_dues += 1
            else:
                paid_amount += d.amount
                paid_dues += 1

        return MemberPaymentSummary(
            paid_amount=paid_amount,
            unpaid_amount=unpaid_amount,
            total_dues=len(dues),
            paid_dues=paid_dues,
            unpaid_dues=unpaid_dues,
        )

    async def member_payment_history(
        self,
        member_id: int,
        organization_id: str,
        months: int | None = None,
        as_of: date | None = None,
    ) -> list[HistoryEntry]:
        """A member's last N months, newest first.

        Months without a dues row are projected as PENDING at the default
        amount and flagged ``has_record=False``.
        """
        await MemberService(self.session).get_member(member_id, organization_id)
        if months is None:
            months = settings.arrears_window_months
        periods = trailing_periods(as_of or utc_today(), validate_window(months))
        default_amount = await DuesService(self.session).get_default_amount(organization_id)
        dues = await self._load_dues(
            Dues.member_id == member_id, *_period_bounds(periods[0], periods[-1])
        )
        by_period = {(d.year, d.month): d for d in dues}

        history = []
        for year, month in reversed(periods):
            d = by_period.get((year, month))
            if d is None:
                history.append(
                    HistoryEntry(
                        year=year,
                        month=month,
                        status=DuesStatus.PENDING,
                        amount=default_amount,
                        paid_amount=0,
                        has_record=False,
                    )
                )
                continue
            verdict = classify(d, d.payments)
            history.append(
                HistoryEntry(
                    year=year,
                    month=month,
                    status=verdict.status,
                    amount=d.amount,
                    paid_amount=verdict.total_paid,
                    has_record=True,
                    dues_id=d.id,
                )
            )
        return history

    async def unpaid_for_month(self, organization_id: str, month: int, year: int) -> list[UnpaidDues]:
        """Issued dues of one period that are PENDING or PARTIAL."""
        validate_month(month)
        validate_year(year)
        dues = await self._load_dues(
            Dues.organization_id == organization_id, Dues.month == month, Dues.year == year
        )
        members = await members_by_id(self.session, {d.member_id for d in dues})

        unpaid = []
        for d in dues:
            verdict = classify(d, d.payments)
            if verdict.is_unpaid:
                unpaid.append(UnpaidDues(dues=d, member=members.get(d.member_id), verdict=verdict))
        unpaid.sort(key=lambda u: (u.member.full_name if u.member else "", u.dues.member_id))
        return unpaid


__all__ = [
    "Period",
    "UnpaidTotal",
    "ArrearsPoint",
    "OutstandingDues",
    "MemberPaymentSummary",
    "HistoryEntry",
    "UnpaidDues",
    "trailing_periods",
    "sum_unpaid",
    "ArrearsService",
]
