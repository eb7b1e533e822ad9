"""Unit tests for the financial summary and transactions."""

from datetime import date, datetime, timedelta, timezone

import pytest

from treasury.models import TransactionType
from treasury.services.dues_service import DuesService
from treasury.services.errors import NotFoundError, ValidationError
from treasury.services.member_service import MemberService
from treasury.services.summary_service import (
    FinancialSummaryService,
    category_totals,
    monthly_totals,
)
from treasury.services.transaction_service import TransactionService


WIB = timezone(timedelta(hours=7))


def _utc(year, month, day=1):
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
async def ledger(session, member, make_dues):
    """Two transactions, one expense and dues payments in Jan-Mar 2024."""
    transactions = TransactionService(session)
    await transactions.create_transaction(
        "org-1", "INCOME", 100000, category="Donation", occurred_at=_utc(2024, 1, 5)
    )
    await transactions.create_transaction(
        "org-1", TransactionType.EXPENSE, 30000, category="Supplies", occurred_at=_utc(2024, 2, 10)
    )
    await transactions.create_transaction(
        "org-1", TransactionType.INCOME, 5000, occurred_at=_utc(2024, 3, 1)
    )
    await make_dues(member, 1, paid=[50000])
    await make_dues(member, 2, paid=[20000])
    await make_dues(member, 3)
    return member


@pytest.mark.unit
class TestTransactionService:
    """Income and expense records."""

    async def test_list_is_newest_first_and_range_is_half_open(self, session, ledger) -> None:
        service = TransactionService(session)

        everything = await service.list_transactions("org-1")
        february = await service.list_transactions(
            "org-1", start=_utc(2024, 2), end=_utc(2024, 3)
        )

        assert [t.amount for t in everything] == [5000, 30000, 100000]
        assert [t.amount for t in february] == [30000]

    async def test_blank_category_is_stored_as_none(self, session) -> None:
        tx = await TransactionService(session).create_transaction(
            "org-1", "EXPENSE", 1000, category="   "
        )

        assert tx.category is None

    async def test_rejects_unknown_type_and_bad_amount(self, session) -> None:
        service = TransactionService(session)

        with pytest.raises(ValidationError):
            await service.create_transaction("org-1", "REFUND", 1000)
        with pytest.raises(ValidationError):
            await service.create_transaction("org-1", "INCOME", -1)

    async def test_delete_from_other_organization_not_found(self, session) -> None:
        service = TransactionService(session)
        tx = await service.create_transaction("org-1", "INCOME", 1000)

        with pytest.raises(NotFoundError):
            await service.delete_transaction(tx.id, "org-2")
        await service.delete_transaction(tx.id, "org-1")
        assert await service.list_transactions("org-1") == []


@pytest.mark.unit
class TestGrouping:
    """Pure grouping helpers over transactions."""

    async def test_monthly_and_category_totals(self, session, ledger) -> None:
        transactions = await TransactionService(session).list_transactions("org-1")

        months = monthly_totals(transactions)
        categories = category_totals(transactions)

        assert [(m.year, m.month, m.income, m.expense) for m in months] == [
            (2024, 1, 100000, 0),
            (2024, 2, 0, 30000),
            (2024, 3, 5000, 0),
        ]
        assert months[1].net == -30000
        assert [(c.type, c.category, c.amount) for c in categories] == [
            (TransactionType.EXPENSE, "Supplies", 30000),
            (TransactionType.INCOME, "Donation", 100000),
            (TransactionType.INCOME, "Uncategorized", 5000),
        ]


@pytest.mark.unit
class TestFinancialSummary:
    """Dashboard composition."""

    async def test_income_includes_transactions_and_dues_payments(self, session, ledger) -> None:
        summary = await FinancialSummaryService(session).get_summary(
            "org-1", as_of=date(2024, 3, 31)
        )

        assert summary.transaction_income == 105000
        assert summary.dues_income == 70000
        assert summary.income == 175000
        assert summary.expense == 30000
        assert summary.balance == 145000
        assert summary.total_unpaid_amount == 30000 + 50000
        assert summary.default_dues_amount == 50000

    async def test_date_range_applies_to_transactions_and_payments(
        self, session, ledger
    ) -> None:
        summary = await FinancialSummaryService(session).get_summary(
            "org-1", start=_utc(2024, 2), end=_utc(2024, 3), as_of=date(2024, 3, 31)
        )

        assert summary.transaction_income == 0
        assert summary.dues_income == 20000
        assert summary.expense == 30000
        assert summary.balance == -10000

    async def test_offset_bounds_and_timestamps_are_compared_in_utc(
        self, session, member, make_dues
    ) -> None:
        transactions = TransactionService(session)
        await transactions.create_transaction(
            "org-1", "INCOME", 1000, occurred_at=datetime(2024, 1, 31, 18, tzinfo=timezone.utc)
        )
        await transactions.create_transaction(
            "org-1", "EXPENSE", 400, occurred_at=datetime(2024, 3, 1, 5, tzinfo=WIB)
        )
        dues = await make_dues(member, 1)
        await DuesService(session).record_payment(
            dues.id, 20000, paid_at=datetime(2024, 2, 1, 3, tzinfo=WIB)
        )
        service = FinancialSummaryService(session)

        local_february = await service.get_summary(
            "org-1",
            start=datetime(2024, 2, 1, tzinfo=WIB),
            end=datetime(2024, 3, 1, tzinfo=WIB),
            as_of=date(2024, 2, 15),
        )
        utc_february = await service.get_summary(
            "org-1", start=_utc(2024, 2), end=_utc(2024, 3), as_of=date(2024, 2, 15)
        )

        assert local_february.transaction_income == 1000
        assert local_february.dues_income == 20000
        assert local_february.expense == 0
        assert utc_february.transaction_income == 0
        assert utc_february.dues_income == 0
        assert utc_february.expense == 400

    async def test_personal_figures_follow_user_link(self, session, ledger) -> None:
        await MemberService(session).link_user("user-1", "org-1", ledger.id)
        service = FinancialSummaryService(session)

        linked = await service.get_summary("org-1", user_id="user-1", as_of=date(2024, 3, 31))
        anonymous = await service.get_summary("org-1", user_id="user-9", as_of=date(2024, 3, 31))

        assert linked.personal_unpaid_amount == 80000
        assert linked.personal_unpaid_months == 2
        assert anonymous.personal_unpaid_amount == 0
        assert anonymous.personal_unpaid_months == 0

    async def test_trend_and_arrears_cover_twelve_months(self, session, ledger) -> None:
        summary = await FinancialSummaryService(session).get_summary(
            "org-1", as_of=date(2024, 3, 31)
        )

        assert len(summary.monthly_trend) == 12
        assert (summary.monthly_trend[-1].year, summary.monthly_trend[-1].month) == (2024, 3)
        assert summary.monthly_trend[-1].income == 5000
        assert summary.monthly_trend[0].income == 0
        assert len(summary.monthly_arrears) == 12
        march = summary.monthly_arrears[-1]
        assert march.issued_unpaid_amount == 50000

    async def test_recent_transactions_are_limited(self, session, ledger) -> None:
        summary = await FinancialSummaryService(session).get_summary(
            "org-1", recent_limit=2, as_of=date(2024, 3, 31)
        )

        assert [t.amount for t in summary.recent_transactions] == [5000, 30000]

    async def test_empty_organization(self, session) -> None:
        summary = await FinancialSummaryService(session).get_summary(
            "org-empty", as_of=date(2024, 3, 31)
        )

        assert summary.income == summary.expense == summary.balance == 0
        assert summary.total_unpaid_amount == 0
        assert summary.default_dues_amount == 50000
        assert summary.category_breakdown == []
