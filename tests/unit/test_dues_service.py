"""Unit tests for dues issuing, payments and the dues config."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from treasury.models import Dues, DuesStatus, Member, Payment, PaymentMethod
from treasury.services.dues_service import DuesService
from treasury.services.errors import ConflictError, NotFoundError, ValidationError


@pytest.mark.unit
class TestDuesConfig:
    """Default amount lookup and updates."""

    async def test_missing_config_falls_back_to_default(self, session) -> None:
        config = await DuesService(session).get_dues_config("org-1")

        assert config.amount == 50000
        assert config.currency == "IDR"
        assert config.is_default

    async def test_set_config_creates_then_updates(self, session) -> None:
        service = DuesService(session)

        await service.set_dues_config("org-1", 75000)
        updated = await service.set_dues_config("org-1", 80000, currency="USD")

        assert updated.amount == 80000
        assert updated.currency == "USD"
        assert not updated.is_default
        assert await service.get_default_amount("org-1") == 80000

    async def test_set_config_rejects_non_positive(self, session) -> None:
        with pytest.raises(ValidationError):
            await DuesService(session).set_dues_config("org-1", 0)

    async def test_config_change_keeps_existing_amounts(self, session, member) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)

        await service.set_dues_config("org-1", 90000)

        assert (await service.get_dues(dues.id)).amount == 50000
        later = await service.create_dues("org-1", member.id, 2, 2024)
        assert later.amount == 90000


@pytest.mark.unit
class TestCreateDues:
    """Creating one dues per member and period."""

    async def test_create_uses_default_amount(self, session, member) -> None:
        dues = await DuesService(session).create_dues("org-1", member.id, 6, 2024)

        assert dues.id is not None
        assert dues.amount == 50000
        assert dues.status == DuesStatus.PENDING

    async def test_second_create_for_same_period_conflicts(self, session, member) -> None:
        service = DuesService(session)
        await service.create_dues("org-1", member.id, 6, 2024)

        with pytest.raises(ConflictError):
            await service.create_dues("org-1", member.id, 6, 2024)

        count = await session.scalar(
            select(func.count()).select_from(Dues).where(
                Dues.member_id == member.id, Dues.month == 6, Dues.year == 2024
            )
        )
        assert count == 1

    async def test_unique_constraint_backs_the_precheck(self, session, member) -> None:
        """Even a write that skips the service pre-check cannot duplicate a period."""
        service = DuesService(session)
        await service.create_dues("org-1", member.id, 6, 2024)
        service.find_dues = _never_found

        with pytest.raises(ConflictError):
            await service.create_dues("org-1", member.id, 6, 2024)

    @pytest.mark.parametrize("month", [0, 13, -1])
    async def test_invalid_month(self, session, member, month) -> None:
        with pytest.raises(ValidationError) as exc:
            await DuesService(session).create_dues("org-1", member.id, month, 2024)
        assert exc.value.field == "month"

    async def test_invalid_year(self, session, member) -> None:
        with pytest.raises(ValidationError):
            await DuesService(session).create_dues("org-1", member.id, 1, 2101)

    async def test_float_amount_rejected(self, session, member) -> None:
        with pytest.raises(ValidationError):
            await DuesService(session).create_dues("org-1", member.id, 1, 2024, amount=500.5)

    async def test_member_of_other_organization_not_found(self, session) -> None:
        outsider = Member(organization_id="org-2", full_name="Outsider")
        session.add(outsider)
        await session.commit()

        with pytest.raises(NotFoundError):
            await DuesService(session).create_dues("org-1", outsider.id, 1, 2024)


async def _never_found(member_id, month, year):
    return None


@pytest.mark.unit
class TestIssueForAllMembers:
    """Issuing a month's dues to every active member."""

    async def test_issue_skips_members_with_dues(
        self, session, member, other_member, make_dues
    ) -> None:
        await make_dues(member, 3)

        result = await DuesService(session).issue_for_all_members("org-1", 3, 2024)

        assert [d.member_id for d in result.created] == [other_member.id]
        assert result.skipped_member_ids == [member.id]
        assert result.amount == 50000

    async def test_issue_ignores_inactive_members(self, session, member, other_member) -> None:
        other_member.is_active = False
        await session.commit()

        result = await DuesService(session).issue_for_all_members("org-1", 3, 2024, amount=60000)

        assert [d.member_id for d in result.created] == [member.id]
        assert result.created[0].amount == 60000


@pytest.mark.unit
class TestPayments:
    """Recording and deleting payments keeps the cached status in step."""

    async def test_partial_then_full_payment(self, session, member) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)

        await service.record_payment(dues.id, 20000, organization_id="org-1")
        assert (await service.get_dues(dues.id)).status == DuesStatus.PARTIAL

        payment = await service.record_payment(
            dues.id, 30000, method="TRANSFER", created_by_id="user-1"
        )
        assert payment.method == PaymentMethod.TRANSFER
        assert payment.member_id == member.id
        assert (await service.get_dues(dues.id)).status == DuesStatus.PAID

    async def test_overpayment_is_accepted(self, session, member) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)

        await service.record_payment(dues.id, 70000)

        assert (await service.get_dues(dues.id)).status == DuesStatus.PAID
        assert [p.amount for p in await service.list_payments(dues.id)] == [70000]

    @pytest.mark.parametrize("amount", [0, -5, 10.5])
    async def test_invalid_payment_amount(self, session, member, amount) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)

        with pytest.raises(ValidationError):
            await service.record_payment(dues.id, amount)

    async def test_unknown_method(self, session, member) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)

        with pytest.raises(ValidationError) as exc:
            await service.record_payment(dues.id, 1000, method="CHEQUE")
        assert exc.value.field == "method"

    async def test_paid_at_is_stored_in_utc(self, session, member) -> None:
        service = DuesService(session)
        dues = await service.create_dues("org-1", member.id, 1, 2024)
        jakarta = timezone(timedelta(hours=7))

        payment = await service.record_payment(
            dues.id, 1000, paid_at=datetime(2024, 2, 1, 3, tzinfo=jakarta)
        )

        assert payment.paid_at == datetime(2024, 1, 31, 20, tzinfo=timezone.utc)
        assert payment.paid_at.utcoffset() == timedelta(0)

    async def test_payment_on_missing_dues(self, session) -> None:
        with pytest.raises(NotFoundError):
            await DuesService(session).record_payment(404, 1000)

    async def test_delete_payments_returns_dues_to_pending(self, session, member, make_dues) -> None:
        dues = await make_dues(member, 1, paid=[20000, 30000])
        service = DuesService(session)

        deleted = await service.delete_payments(dues.id, "org-1")

        assert deleted == 2
        refreshed = await service.get_dues(dues.id)
        assert refreshed.payments == []
        assert refreshed.status == DuesStatus.PENDING
        assert await session.scalar(select(func.count()).select_from(Payment)) == 0


@pytest.mark.unit
class TestDeleteDues:
    """Deleting a dues refuses to drop recorded money silently."""

    async def test_delete_without_payments(self, session, member, make_dues) -> None:
        dues = await make_dues(member, 1)
        service = DuesService(session)

        assert await service.delete_dues(dues.id, "org-1") == 0
        assert await service.find_dues(member.id, 1, 2024) is None

    async def test_delete_with_payments_conflicts(self, session, member, make_dues) -> None:
        dues = await make_dues(member, 1, paid=[10000])

        with pytest.raises(ConflictError):
            await DuesService(session).delete_dues(dues.id, "org-1")

    async def test_forced_delete_removes_payments(self, session, member, make_dues) -> None:
        dues = await make_dues(member, 1, paid=[10000, 5000])
        service = DuesService(session)

        assert await service.delete_dues(dues.id, "org-1", force=True) == 2
        assert await service.find_dues(member.id, 1, 2024) is None
        assert await session.scalar(select(func.count()).select_from(Payment)) == 0

    async def test_delete_in_other_organization_not_found(self, session, member, make_dues) -> None:
        dues = await make_dues(member, 1)

        with pytest.raises(NotFoundError):
            await DuesService(session).delete_dues(dues.id, "org-2")
