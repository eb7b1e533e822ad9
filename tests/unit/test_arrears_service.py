"""Unit tests for arrears aggregation."""

from datetime import date

import pytest

from treasury.models import Dues, DuesStatus, Member
from treasury.services.arrears_service import ArrearsService, sum_unpaid, trailing_periods
from treasury.services.dues_service import DuesService
from treasury.services.errors import NotFoundError, ValidationError
from treasury.services.member_service import MemberService


@pytest.fixture
async def first_half_2024(member, make_dues):
    """Jan and Feb paid, Mar partially paid (20000), Apr-Jun unpaid."""
    await make_dues(member, 1, paid=[50000])
    await make_dues(member, 2, paid=[50000])
    await make_dues(member, 3, paid=[20000])
    for month in (4, 5, 6):
        await make_dues(member, month)
    return member


@pytest.mark.unit
class TestTrailingPeriods:
    """Calendar arithmetic for trailing windows."""

    def test_periods_are_oldest_first_and_end_with_as_of_month(self) -> None:
        periods = trailing_periods(date(2024, 3, 10), 4)

        assert periods == [(2023, 12), (2024, 1), (2024, 2), (2024, 3)]

    def test_twelve_months_cross_one_year_boundary(self) -> None:
        periods = trailing_periods(date(2024, 6, 1), 12)

        assert len(periods) == 12
        assert periods[0] == (2023, 7)
        assert periods[-1] == (2024, 6)


@pytest.mark.unit
class TestPersonalUnpaid:
    """A member's issued arrears."""

    async def test_scenario_totals(self, session, first_half_2024) -> None:
        total = await ArrearsService(session).personal_unpaid(first_half_2024.id, "org-1")

        assert total.unpaid_amount == 30000 + 50000 * 3
        assert total.unpaid_months == 4

    async def test_unlinked_user_has_no_arrears(self, session, first_half_2024) -> None:
        total = await ArrearsService(session).personal_unpaid_for_user("nobody", "org-1")

        assert total.unpaid_amount == 0
        assert total.unpaid_months == 0

    async def test_linked_user_gets_member_arrears(self, session, first_half_2024) -> None:
        await MemberService(session).link_user("user-1", "org-1", first_half_2024.id)

        total = await ArrearsService(session).personal_unpaid_for_user("user-1", "org-1")

        assert total.unpaid_amount == 180000
        assert total.unpaid_months == 4


@pytest.mark.unit
class TestOrganizationUnpaidTotal:
    """Organization-wide issued arrears."""

    async def test_matches_brute_force_recomputation(
        self, session, member, other_member, make_dues
    ) -> None:
        plan = {
            member: [(1, 50000, [50000]), (2, 50000, [10000, 5000]), (3, 50000, []), (4, 40000, [90000])],
            other_member: [(1, 60000, []), (2, 60000, [59999]), (12, 25000, [1])],
        }
        for owner, rows in plan.items():
            for month, amount, paid in rows:
                await make_dues(owner, month, amount=amount, paid=paid)

        total = await ArrearsService(session).organization_unpaid_total("org-1")

        expected_amount = 0
        expected_count = 0
        for rows in plan.values():
            for _, amount, paid in rows:
                if sum(paid) < amount:
                    expected_amount += amount - sum(paid)
                    expected_count += 1
        assert total.unpaid_amount == expected_amount
        assert total.unpaid_months == expected_count

    async def test_other_organizations_are_excluded(self, session, member, make_dues) -> None:
        outsider = Member(organization_id="org-2", full_name="Outsider")
        session.add(outsider)
        await session.commit()
        await make_dues(member, 1)
        await make_dues(outsider, 1, amount=99000)

        total = await ArrearsService(session).organization_unpaid_total("org-1")

        assert total.unpaid_amount == 50000

    async def test_period_bounds_are_inclusive(self, session, member, make_dues) -> None:
        await make_dues(member, 11, year=2023)
        await make_dues(member, 1, year=2024)
        await make_dues(member, 2, year=2024)

        total = await ArrearsService(session).organization_unpaid_total(
            "org-1", start=(2023, 12), end=(2024, 1)
        )

        assert total.unpaid_months == 1

    def test_sum_unpaid_ignores_cached_status(self) -> None:
        stale = Dues(amount=50000, month=1, year=2024, status=DuesStatus.PAID, payments=[])

        assert sum_unpaid([stale]).unpaid_amount == 50000


@pytest.mark.unit
class TestTrailingArrears:
    """Monthly series with issued and projected figures."""

    async def test_projected_counts_missing_months_at_default(
        self, session, member, other_member, make_dues
    ) -> None:
        await make_dues(member, 5, paid=[20000])
        await make_dues(other_member, 6, paid=[50000])

        series = await ArrearsService(session).trailing_arrears(
            "org-1", months=3, as_of=date(2024, 6, 20)
        )

        assert [(p.year, p.month) for p in series] == [(2024, 4), (2024, 5), (2024, 6)]
        april, may, june = series
        assert april.issued_unpaid_amount == 0
        assert april.unpaid_amount == 2 * 50000
        assert may.issued_unpaid_amount == 30000
        assert may.unpaid_amount == 30000 + 50000
        assert june.issued_unpaid_amount == 0
        assert june.unpaid_amount == 50000

    async def test_projection_uses_configured_default(self, session, member) -> None:
        await DuesService(session).set_dues_config("org-1", 75000)

        series = await ArrearsService(session).trailing_arrears(
            "org-1", months=1, as_of=date(2024, 1, 1)
        )

        assert series[0].unpaid_amount == 75000
        assert series[0].issued_unpaid_amount == 0

    async def test_default_window_comes_from_settings(self, session, member) -> None:
        series = await ArrearsService(session).trailing_arrears("org-1", as_of=date(2024, 6, 1))

        assert len(series) == 12
        assert (series[0].year, series[0].month) == (2023, 7)

    async def test_default_as_of_is_utc_today(self, session, member, monkeypatch) -> None:
        monkeypatch.setattr(
            "treasury.services.arrears_service.utc_today", lambda: date(2024, 3, 31)
        )

        series = await ArrearsService(session).trailing_arrears("org-1", months=2)

        assert [(p.year, p.month) for p in series] == [(2024, 2), (2024, 3)]

    @pytest.mark.parametrize("months", [0, -3])
    async def test_non_positive_window_rejected(self, session, member, months) -> None:
        service = ArrearsService(session)

        with pytest.raises(ValidationError) as exc:
            await service.trailing_arrears("org-1", months=months, as_of=date(2024, 6, 1))
        assert exc.value.field == "months"
        with pytest.raises(ValidationError):
            await service.member_payment_history(
                member.id, "org-1", months=months, as_of=date(2024, 6, 1)
            )


@pytest.mark.unit
class TestMemberReports:
    """Outstanding dues, payment summary and history of one member."""

    async def test_outstanding_dues_oldest_first(self, session, first_half_2024) -> None:
        outstanding = await ArrearsService(session).outstanding_dues(first_half_2024.id, "org-1")

        assert [o.month for o in outstanding] == [3, 4, 5, 6]
        assert outstanding[0].status == DuesStatus.PARTIAL
        assert outstanding[0].remaining_amount == 30000

    async def test_outstanding_for_unknown_member(self, session) -> None:
        with pytest.raises(NotFoundError):
            await ArrearsService(session).outstanding_dues(999, "org-1")

    async def test_payment_summary(self, session, first_half_2024) -> None:
        summary = await ArrearsService(session).member_payment_summary(first_half_2024.id, "org-1")

        assert summary.total_dues == 6
        assert summary.paid_dues == 2
        assert summary.unpaid_dues == 4
        assert summary.paid_amount == 50000 * 2 + 20000
        assert summary.unpaid_amount == 180000

    async def test_history_newest_first_with_projected_months(
        self, session, first_half_2024
    ) -> None:
        history = await ArrearsService(session).member_payment_history(
            first_half_2024.id, "org-1", months=8, as_of=date(2024, 8, 1)
        )

        assert [(h.year, h.month) for h in history][:3] == [(2024, 8), (2024, 7), (2024, 6)]
        august = history[0]
        assert not august.has_record
        assert august.status == DuesStatus.PENDING
        assert august.amount == 50000
        assert august.dues_id is None
        march = next(h for h in history if h.month == 3)
        assert march.has_record
        assert march.status == DuesStatus.PARTIAL
        assert march.paid_amount == 20000


@pytest.mark.unit
class TestUnpaidForMonth:
    """Issued dues of one period still owing money."""

    async def test_lists_pending_and_partial_only(
        self, session, member, other_member, make_dues
    ) -> None:
        await make_dues(member, 4, paid=[10000])
        await make_dues(other_member, 4, paid=[50000])

        unpaid = await ArrearsService(session).unpaid_for_month("org-1", 4, 2024)

        assert [u.dues.member_id for u in unpaid] == [member.id]
        assert unpaid[0].member.full_name == "Ayu Lestari"
        assert unpaid[0].verdict.remaining_amount == 40000
