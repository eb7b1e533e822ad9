"""Unit tests for the yearly dues grid."""

import pytest

from treasury.models import Dues, DuesStatus, Member, Payment
from treasury.services.errors import NotFoundError, ValidationError
from treasury.services.yearly_status_service import YearlyStatusService, build_yearly_grid


def _member(member_id, name="Member"):
    return Member(id=member_id, organization_id="org-1", full_name=name)


def _dues(dues_id, member_id, month, year=2024, amount=50000, paid=()):
    return Dues(
        id=dues_id,
        organization_id="org-1",
        member_id=member_id,
        month=month,
        year=year,
        amount=amount,
        payments=[Payment(amount=p) for p in paid],
    )


@pytest.mark.unit
class TestBuildYearlyGrid:
    """build_yearly_grid is pure: members and dues in, rows out."""

    def test_every_month_is_present(self) -> None:
        grid = build_yearly_grid([_member(1)], [], 2024)

        assert len(grid) == 1
        assert sorted(grid[0].monthly_status) == list(range(1, 13))

    def test_missing_dues_is_no_record_not_pending(self) -> None:
        """A month without dues differs from a month with an unpaid dues."""
        alice, bob = _member(1, "Alice"), _member(2, "Bob")
        grid = build_yearly_grid([alice, bob], [_dues(10, 2, 3)], 2024)

        alice_march = grid[0].monthly_status[3]
        bob_march = grid[1].monthly_status[3]
        assert alice_march is None
        assert bob_march is not None
        assert bob_march.status == DuesStatus.PENDING
        assert bob_march.total_paid == 0
        assert bob_march.remaining_amount == 50000

    def test_cells_carry_classified_amounts(self) -> None:
        grid = build_yearly_grid(
            [_member(1)],
            [_dues(10, 1, 1, paid=[50000]), _dues(11, 1, 2, paid=[20000])],
            2024,
        )
        row = grid[0]

        assert row.monthly_status[1].status == DuesStatus.PAID
        assert row.monthly_status[1].dues_id == 10
        assert row.monthly_status[2].status == DuesStatus.PARTIAL
        assert row.monthly_status[2].remaining_amount == 30000
        assert row.unpaid_months() == [2]
        assert row.missing_months() == list(range(3, 13))

    def test_dues_of_other_years_and_members_are_ignored(self) -> None:
        grid = build_yearly_grid(
            [_member(1)],
            [_dues(10, 1, 5, year=2023), _dues(11, 99, 5)],
            2024,
        )

        assert grid[0].monthly_status[5] is None

    def test_rows_follow_member_order(self) -> None:
        grid = build_yearly_grid([_member(2, "B"), _member(1, "A")], [], 2024)

        assert [row.member_id for row in grid] == [2, 1]


@pytest.mark.unit
class TestYearlyStatusService:
    """Grid loaded from the database."""

    async def test_scenario_first_half_of_year(self, session, member, make_dues) -> None:
        await make_dues(member, 1, paid=[50000])
        await make_dues(member, 2, paid=[50000])
        await make_dues(member, 3, paid=[20000])
        for month in (4, 5, 6):
            await make_dues(member, month)

        grid = await YearlyStatusService(session).get_yearly_status("org-1", 2024)

        statuses = {m: c.status if c else None for m, c in grid[0].monthly_status.items()}
        assert statuses[1] == DuesStatus.PAID
        assert statuses[2] == DuesStatus.PAID
        assert statuses[3] == DuesStatus.PARTIAL
        assert grid[0].monthly_status[3].remaining_amount == 30000
        assert statuses[4] == statuses[5] == statuses[6] == DuesStatus.PENDING
        assert all(statuses[m] is None for m in range(7, 13))

    async def test_inactive_members_are_excluded(self, session, member, other_member) -> None:
        other_member.is_active = False
        await session.commit()

        grid = await YearlyStatusService(session).get_yearly_status("org-1", 2024)

        assert [row.member_id for row in grid] == [member.id]

    async def test_single_member_filter(self, session, member, other_member, make_dues) -> None:
        await make_dues(other_member, 1)

        grid = await YearlyStatusService(session).get_yearly_status(
            "org-1", 2024, member_id=other_member.id
        )

        assert len(grid) == 1
        assert grid[0].monthly_status[1] is not None

    async def test_unknown_member_raises_not_found(self, session, member) -> None:
        with pytest.raises(NotFoundError):
            await YearlyStatusService(session).get_yearly_status("org-1", 2024, member_id=999)

    async def test_out_of_range_year_raises_validation(self, session) -> None:
        with pytest.raises(ValidationError):
            await YearlyStatusService(session).get_yearly_status("org-1", 1999)
