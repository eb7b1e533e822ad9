"""Financial summary for the organization dashboard.

Income formula: INCOME transactions + payments on the organization's dues.
Dues income and direct income are summed into one figure; both parts are
also reported separately.

    balance = income - expense
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.models.dues import Dues
from treasury.models.payment import Payment
from treasury.models.transaction import Transaction, TransactionType
from treasury.services.arrears_service import ArrearsPoint, ArrearsService, trailing_periods
from treasury.services.dues_service import DuesService
from treasury.services.transaction_service import TransactionService
from treasury.services.validation import to_utc, utc_today

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
TREND_MONTHS = 12


@dataclass(frozen=True)
class MonthlyTotals:
    """Transaction income and expense of one calendar month."""

    year: int
    month: int
    income: int
    expense: int

    @property
    def net(self) -> int:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryTotal:
    """Transactions of one type and category."""

    type: TransactionType
    category: str
    amount: int
    count: int


@dataclass(frozen=True)
class FinancialSummary:
    """Dashboard payload."""

    income: int
    expense: int
    balance: int
    transaction_income: int
    dues_income: int
    total_unpaid_amount: int
    personal_unpaid_amount: int
    personal_unpaid_months: int
    default_dues_amount: int
    monthly_arrears: list[ArrearsPoint]
    monthly_breakdown: list[MonthlyTotals]
    category_breakdown: list[CategoryTotal]
    monthly_trend: list[MonthlyTotals]
    recent_transactions: list[Transaction]


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _next_month_start(year: int, month: int) -> datetime:
    return _month_start(year + 1, 1) if month == 12 else _month_start(year, month + 1)


def monthly_totals(transactions: Iterable[Transaction]) -> list[MonthlyTotals]:
    """Group transactions by calendar month, oldest first."""
    income: dict[tuple[int, int], int] = defaultdict(int)
    expense: dict[tuple[int, int], int] = defaultdict(int)
    for tx in transactions:
        key = (tx.occurred_at.year, tx.occurred_at.month)
        if tx.type == TransactionType.INCOME:
            income[key] += tx.amount
        else:
            expense[key] += tx.amount
    return [
        MonthlyTotals(
            year=year, month=month, income=income[(year, month)], expense=expense[(year, month)]
        )
        for year, month in sorted(set(income) | set(expense))
    ]


def category_totals(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Group transactions by (type, category), largest amount first."""
    amounts: dict[tuple[TransactionType, str], int] = defaultdict(int)
    counts: dict[tuple[TransactionType, str], int] = defaultdict(int)
    for tx in transactions:
        key = (TransactionType(tx.type), tx.category or UNCATEGORIZED)
        amounts[key] += tx.amount
        counts[key] += 1
    totals = [
        CategoryTotal(
            type=tx_type, category=category, amount=amount, count=counts[(tx_type, category)]
        )
        for (tx_type, category), amount in amounts.items()
    ]
    totals.sort(key=lambda c: (c.type.value, -c.amount, c.category))
    return totals


class FinancialSummaryService:
    """Compose transaction, payment and arrears figures for dashboards."""

    def __init__(self, session: AsyncSession):
        """Initialize with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session
        self.arrears = ArrearsService(session)

    async def dues_income(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """Sum of payments on the organization's dues, paid within [start, end)."""
        start, end = to_utc(start), to_utc(end)
        stmt = (
            select(func.coalesce(func.sum(Payment.amount), 0))
            .join(Dues, Payment.dues_id == Dues.id)
            .where(Dues.organization_id == organization_id)
        )
        if start is not None:
            stmt = stmt.where(Payment.paid_at >= start)
        if end is not None:
            stmt = stmt.where(Payment.paid_at < end)
        return int((await self.session.execute(stmt)).scalar_one())

    async def get_summary(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        user_id: str | None = None,
        as_of: date | None = None,
        recent_limit: int = 20,
    ) -> FinancialSummary:
        """Build the dashboard summary.

        Args:
            organization_id: Organization to summarize
            start: Inclusive lower bound for transactions and payments
            end: Exclusive upper bound for transactions and payments
            user_id: Login user whose linked member's arrears are reported
            as_of: Reference date for trailing series (default: today in UTC)
            recent_limit: Number of latest transactions to include

        Returns:
            FinancialSummary; a missing dues config falls back to the default amount
        """
        as_of = as_of or utc_today()
        start, end = to_utc(start), to_utc(end)
        transactions = await TransactionService(self.session).list_transactions(
            organization_id, start=start, end=end
        )

        transaction_income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
        expense = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
        dues_income = await self.dues_income(organization_id, start=start, end=end)
        income = transaction_income + dues_income

        unpaid = await self.arrears.organization_unpaid_total(organization_id)
        if user_id is not None:
            personal = await self.arrears.personal_unpaid_for_user(user_id, organization_id)
        else:
            personal = None

        trend_periods = trailing_periods(as_of, TREND_MONTHS)
        trend_source = await TransactionService(self.session).list_transactions(
            organization_id,
            start=_month_start(*trend_periods[0]),
            end=_next_month_start(*trend_periods[-1]),
        )
        by_month = {(m.year, m.month): m for m in monthly_totals(trend_source)}
        monthly_trend = [
            by_month.get((year, month), MonthlyTotals(year=year, month=month, income=0, expense=0))
            for year, month in trend_periods
        ]

        summary = FinancialSummary(
            income=income,
            expense=expense,
            balance=income - expense,
            transaction_income=transaction_income,
            dues_income=dues_income,
            total_unpaid_amount=unpaid.unpaid_amount,
            personal_unpaid_amount=personal.unpaid_amount if personal else 0,
            personal_unpaid_months=personal.unpaid_months if personal else 0,
            default_dues_amount=await DuesService(self.session).get_default_amount(organization_id),
            monthly_arrears=await self.arrears.trailing_arrears(organization_id, as_of=as_of),
            monthly_breakdown=monthly_totals(transactions),
            category_breakdown=category_totals(transactions),
            monthly_trend=monthly_trend,
            recent_transactions=transactions[:recent_limit],
        )
        logger.debug(
            f"Summary org={organization_id}: income={income} expense={expense} "
            f"unpaid={summary.total_unpaid_amount}"
        )
        return summary


__all__ = [
    "MonthlyTotals",
    "CategoryTotal",
    "FinancialSummary",
    "monthly_totals",
    "category_totals",
    "FinancialSummaryService",
]
