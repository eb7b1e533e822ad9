"""Bulk dues mutations for one member and year.

A bulk request names months to create, delete and pay. Every month is an
independent item with its own session and commit, so one failing month never
rolls back or blocks its siblings:

- create: new dues at the organization's default amount, read once per
  request and snapshotted into each created dues
- delete: payments first, then the dues, then a re-read to verify it is gone
- pay: one payment for the full remaining amount of a PENDING/PARTIAL dues

Creates and deletes run concurrently (bounded by BULK_MAX_CONCURRENCY). Pays
run afterwards one at a time, oldest (year, month) first, whatever order the
months were selected in.

Per-item errors become ``BulkFailure`` entries; only a malformed request
(bad year or method, unknown member) fails as a whole.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.models.payment import PaymentMethod
from treasury.services.config import settings
from treasury.services.dues_service import DuesService
from treasury.services.errors import ConflictError, LedgerError, NotFoundError
from treasury.services.locale_service import bulk_payment_note, format_amount
from treasury.services.member_service import MemberService
from treasury.services.status_classifier import classify
from treasury.services.validation import validate_enum, validate_month, validate_year

logger = logging.getLogger(__name__)


class BulkOperation(str, Enum):
    """Kind of per-month mutation in a bulk request."""

    CREATE = "create"
    DELETE = "delete"
    PAY = "pay"


@dataclass(frozen=True)
class BulkItem:
    """One month of a bulk request and, once done, what it touched."""

    month: int
    year: int
    dues_id: int | None = None
    amount: int | None = None


@dataclass(frozen=True)
class BulkFailure:
    """A month that could not be processed."""

    item: BulkItem
    operation: BulkOperation
    reason: str
    """Error code: validation_error, not_found, conflict or storage_error."""
    message: str


@dataclass
class BulkResult:
    """Succeeded items per operation plus failures, in processing order."""

    created: list[BulkItem] = field(default_factory=list)
    deleted: list[BulkItem] = field(default_factory=list)
    paid: list[BulkItem] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Per-class counts: created, deleted, paid, failed."""
        return {
            "created": len(self.created),
            "deleted": len(self.deleted),
            "paid": len(self.paid),
            "failed": len(self.failed),
        }

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def paid_amount(self) -> int:
        return sum(item.amount or 0 for item in self.paid)

    def _record(self, operation: BulkOperation, outcome: BulkItem | BulkFailure) -> None:
        if isinstance(outcome, BulkFailure):
            self.failed.append(outcome)
        elif operation == BulkOperation.CREATE:
            self.created.append(outcome)
        elif operation == BulkOperation.DELETE:
            self.deleted.append(outcome)
        else:
            self.paid.append(outcome)


def _unique_months(months: Iterable[int]) -> list[int]:
    seen: list[int] = []
    for month in months:
        if month not in seen:
            seen.append(month)
    return seen


def _default_concurrency(session_factory: async_sessionmaker[AsyncSession]) -> int:
    # SQLite serializes writers; concurrent commits fail with "database is locked"
    bind = session_factory.kw.get("bind")
    if bind is not None and bind.dialect.name == "sqlite":
        return 1
    return settings.bulk_max_concurrency


class BulkDuesService:
    """Best-effort batch orchestration of dues create/delete/pay."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_concurrency: int | None = None,
    ):
        """Initialize with a session factory.

        Args:
            session_factory: Factory producing one session per item
            max_concurrency: Concurrent create/delete items
                (default: BULK_MAX_CONCURRENCY setting, 1 on SQLite)
        """
        self.session_factory = session_factory
        self.max_concurrency = max_concurrency or _default_concurrency(session_factory)

    async def manage(
        self,
        organization_id: str,
        member_id: int,
        year: int,
        create_months: Iterable[int] = (),
        delete_months: Iterable[int] = (),
        pay_months: Iterable[int] = (),
        method: PaymentMethod | str = PaymentMethod.CASH,
        note: str | None = None,
        created_by_id: str | None = None,
        paid_at: datetime | None = None,
    ) -> BulkResult:
        """Apply create, delete and pay selections for one member and year.

        Args:
            organization_id: Organization owning the member
            member_id: Target member
            year: Year of every selected month
            create_months: Months to issue new dues for
            delete_months: Months whose dues (and payments) are removed
            pay_months: Months whose remaining amount is paid in full
            method: Payment method for created payments
            note: Note prefix for created payments
            created_by_id: Principal recorded on created payments
            paid_at: Payment timestamp (default: now)

        Returns:
            BulkResult; callers should re-read statuses rather than infer them

        Raises:
            ValidationError: If year or method is invalid
            NotFoundError: If the member is not in the organization
        """
        validate_year(year)
        method = validate_enum(PaymentMethod, method, "method")

        async with self.session_factory() as session:
            await MemberService(session).get_member(member_id, organization_id)
            default_amount = await DuesService(session).get_default_amount(organization_id)

        result = BulkResult()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(operation: BulkOperation, month: int, action) -> tuple:
            async with semaphore:
                return operation, await self._run_item(operation, month, year, action)

        concurrent = []
        for month in _unique_months(create_months):
            concurrent.append(
                bounded(
                    BulkOperation.CREATE,
                    month,
                    lambda m=month: self._create_one(
                        organization_id, member_id, m, year, default_amount
                    ),
                )
            )
        for month in _unique_months(delete_months):
            concurrent.append(
                bounded(
                    BulkOperation.DELETE,
                    month,
                    lambda m=month: self._delete_one(organization_id, member_id, m, year),
                )
            )
        for operation, outcome in await asyncio.gather(*concurrent):
            result._record(operation, outcome)

        # Oldest debt first: (year, month) ascending; invalid months fail first
        ordered = sorted(
            _unique_months(pay_months),
            key=lambda m: (year, m) if isinstance(m, int) and not isinstance(m, bool) else (0, 0),
        )
        for month in ordered:
            outcome = await self._run_item(
                BulkOperation.PAY,
                month,
                year,
                lambda m=month: self._pay_one(
                    organization_id, member_id, m, year, method, note, created_by_id, paid_at
                ),
            )
            result._record(BulkOperation.PAY, outcome)

        counts = result.counts()
        log = logger.warning if result.has_failures else logger.info
        log(
            f"Bulk dues for member {member_id} year {year}: created={counts['created']} "
            f"deleted={counts['deleted']} paid={counts['paid']} "
            f"({format_amount(result.paid_amount)}) failed={counts['failed']}"
        )
        return result

    async def create(
        self, organization_id: str, member_id: int, year: int, months: Iterable[int]
    ) -> BulkResult:
        """Issue dues for the selected months."""
        return await self.manage(organization_id, member_id, year, create_months=months)

    async def delete(
        self, organization_id: str, member_id: int, year: int, months: Iterable[int]
    ) -> BulkResult:
        """Delete the selected months' dues, payments included."""
        return await self.manage(organization_id, member_id, year, delete_months=months)

    async def pay(
        self,
        organization_id: str,
        member_id: int,
        year: int,
        months: Iterable[int],
        method: PaymentMethod | str = PaymentMethod.CASH,
        note: str | None = None,
        created_by_id: str | None = None,
    ) -> BulkResult:
        """Pay off the selected months, oldest first."""
        return await self.manage(
            organization_id,
            member_id,
            year,
            pay_months=months,
            method=method,
            note=note,
            created_by_id=created_by_id,
        )

    async def _run_item(
        self,
        operation: BulkOperation,
        month: int,
        year: int,
        action: Callable[[], Awaitable[BulkItem]],
    ) -> BulkItem | BulkFailure:
        item = BulkItem(month=month, year=year)
        try:
            validate_month(month)
            return await action()
        except LedgerError as e:
            logger.warning(f"Bulk {operation.value} {year}-{month} failed: {e.code}: {e.message}")
            return BulkFailure(item=item, operation=operation, reason=e.code, message=e.message)
        except SQLAlchemyError:
            logger.error(f"Bulk {operation.value} {year}-{month} storage failure", exc_info=True)
            return BulkFailure(
                item=item,
                operation=operation,
                reason="storage_error",
                message="The change could not be saved",
            )

    async def _create_one(
        self, organization_id: str, member_id: int, month: int, year: int, amount: int
    ) -> BulkItem:
        async with self.session_factory() as session:
            dues = await DuesService(session).create_dues(
                organization_id, member_id, month, year, amount=amount
            )
            return BulkItem(month=month, year=year, dues_id=dues.id, amount=dues.amount)

    async def _delete_one(
        self, organization_id: str, member_id: int, month: int, year: int
    ) -> BulkItem:
        async with self.session_factory() as session:
            service = DuesService(session)
            dues = await service.find_dues(member_id, month, year)
            if dues is None or dues.organization_id != organization_id:
                raise NotFoundError(f"No dues for {year}-{month:02d}", "month")
            dues_id = dues.id
            await service.delete_dues(dues_id, organization_id, force=True)

        async with self.session_factory() as session:
            if await DuesService(session).find_dues(member_id, month, year) is not None:
                raise ConflictError(f"Dues for {year}-{month:02d} still present after delete", "month")
        return BulkItem(month=month, year=year, dues_id=dues_id)

    async def _pay_one(
        self,
        organization_id: str,
        member_id: int,
        month: int,
        year: int,
        method: PaymentMethod,
        note: str | None,
        created_by_id: str | None,
        paid_at: datetime | None,
    ) -> BulkItem:
        async with self.session_factory() as session:
            service = DuesService(session)
            dues = await service.find_dues(member_id, month, year)
            if dues is None or dues.organization_id != organization_id:
                raise NotFoundError(f"No dues for {year}-{month:02d}", "month")

            verdict = classify(dues, dues.payments)
            if not verdict.is_unpaid:
                raise ConflictError(f"Dues for {year}-{month:02d} is already paid", "month")

            payment = await service.record_payment(
                dues.id,
                verdict.remaining_amount,
                method=method,
                note=bulk_payment_note(note, month, year),
                created_by_id=created_by_id,
                paid_at=paid_at,
                organization_id=organization_id,
            )
            return BulkItem(month=month, year=year, dues_id=dues.id, amount=payment.amount)


__all__ = [
    "BulkOperation",
    "BulkItem",
    "BulkFailure",
    "BulkResult",
    "BulkDuesService",
]
