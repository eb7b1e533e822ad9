"""Yearly dues grid: per member, per month payment status.

A month without a Dues row is reported as ``None`` ("no record"): no charge
was issued. That is a different state from PENDING, which means a charge
exists and nothing has been paid against it.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from treasury.models.dues import Dues, DuesStatus
from treasury.models.member import Member
from treasury.services.member_service import MemberService
from treasury.services.status_classifier import classify
from treasury.services.validation import validate_year

logger = logging.getLogger(__name__)

MONTHS = range(1, 13)


@dataclass(frozen=True)
class MonthCell:
    """Status of one issued dues in the grid."""

    dues_id: int
    status: DuesStatus
    dues_amount: int
    total_paid: int
    remaining_amount: int


@dataclass
class MemberYearStatus:
    """One grid row: a member's twelve months."""

    member: Member
    year: int
    monthly_status: dict[int, MonthCell | None] = field(default_factory=dict)

    @property
    def member_id(self) -> int:
        return self.member.id

    def unpaid_months(self) -> list[int]:
        """Months with an issued dues that is not fully paid."""
        return [
            month
            for month, cell in self.monthly_status.items()
            if cell is not None and cell.status != DuesStatus.PAID
        ]

    def missing_months(self) -> list[int]:
        """Months with no dues record."""
        return [month for month, cell in self.monthly_status.items() if cell is None]


def build_yearly_grid(
    members: Iterable[Member], dues: Iterable[Dues], year: int
) -> list[MemberYearStatus]:
    """Build the status grid for one year.

    Args:
        members: Members to report, in display order
        dues: Dues of the year with payments loaded; dues of members not in
            ``members`` or of other years are ignored
        year: Reported year

    Returns:
        One MemberYearStatus per member with all twelve months present
    """
    by_key: dict[tuple[int, int], Dues] = {}
    for d in dues:
        if d.year == year:
            by_key[(d.member_id, d.month)] = d

    grid = []
    for member in members:
        row = MemberYearStatus(member=member, year=year)
        for month in MONTHS:
            d = by_key.get((member.id, month))
            if d is None:
                row.monthly_status[month] = None
                continue
            verdict = classify(d, d.payments)
            row.monthly_status[month] = MonthCell(
                dues_id=d.id,
                status=verdict.status,
                dues_amount=d.amount,
                total_paid=verdict.total_paid,
                remaining_amount=verdict.remaining_amount,
            )
        grid.append(row)
    return grid


class YearlyStatusService:
    """Loads members and dues and builds the yearly grid."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_yearly_status(
        self, organization_id: str, year: int, member_id: int | None = None
    ) -> list[MemberYearStatus]:
        """Grid for the organization's active members (or one member).

        Args:
            organization_id: Organization to report
            year: Calendar year
            member_id: Restrict to one member (active or not)

        Raises:
            ValidationError: On an out-of-range year
            NotFoundError: If member_id is not in the organization
        """
        validate_year(year)
        member_service = MemberService(self.session)
        if member_id is not None:
            members = [await member_service.get_member(member_id, organization_id)]
        else:
            members = await member_service.list_members(organization_id)

        stmt = (
            select(Dues)
            .options(selectinload(Dues.payments))
            .where(Dues.organization_id == organization_id, Dues.year == year)
        )
        if member_id is not None:
            stmt = stmt.where(Dues.member_id == member_id)
        dues = (await self.session.execute(stmt)).scalars().all()

        logger.debug(
            f"Yearly grid org={organization_id} year={year}: "
            f"{len(members)} member(s), {len(dues)} dues"
        )
        return build_yearly_grid(members, dues, year)


__all__ = [
    "MONTHS",
    "MonthCell",
    "MemberYearStatus",
    "build_yearly_grid",
    "YearlyStatusService",
]
