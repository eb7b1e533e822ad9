"""Dues status classification.

Single source of truth for turning a Dues amount and its payments into a
settlement status:

    total_paid      = sum(payment.amount)
    raw_remaining   = dues.amount - total_paid        (negative on over-payment)
    remaining       = max(0, raw_remaining)           (display value)
    status          = PAID     if total_paid >= dues.amount
                      PARTIAL  if 0 < total_paid < dues.amount
                      PENDING  if total_paid == 0
"""

from typing import Iterable, NamedTuple

from treasury.models.dues import Dues, DuesStatus
from treasury.models.payment import Payment


class DuesStatusResult(NamedTuple):
    """Classifier verdict for one Dues."""

    status: DuesStatus
    total_paid: int
    remaining_amount: int
    raw_remaining: int

    @property
    def is_unpaid(self) -> bool:
        """True for PENDING and PARTIAL."""
        return self.status != DuesStatus.PAID

    @property
    def overpaid_amount(self) -> int:
        """Surplus paid beyond the dues amount (0 when not over-paid)."""
        return max(0, -self.raw_remaining)


def classify_amounts(dues_amount: int, payment_amounts: Iterable[int]) -> DuesStatusResult:
    """Classify a dues amount against payment amounts.

    Args:
        dues_amount: Charged amount (non-negative integer)
        payment_amounts: Amounts of the payments recorded against it

    Returns:
        DuesStatusResult with status, total paid and remaining amounts
    """
    total_paid = sum(payment_amounts)
    raw_remaining = dues_amount - total_paid

    if total_paid >= dues_amount:
        status = DuesStatus.PAID
    elif total_paid > 0:
        status = DuesStatus.PARTIAL
    else:
        status = DuesStatus.PENDING

    return DuesStatusResult(
        status=status,
        total_paid=total_paid,
        remaining_amount=max(0, raw_remaining),
        raw_remaining=raw_remaining,
    )


def classify(dues: Dues, payments: Iterable[Payment]) -> DuesStatusResult:
    """Classify a Dues record with its payments. Performs no I/O."""
    return classify_amounts(dues.amount, (p.amount for p in payments))


def reconcile_dues_status(dues: Dues, payments: Iterable[Payment] | None = None) -> DuesStatusResult:
    """Recompute and store the cached status of a Dues.

    Every write path that changes a Dues' payments must call this; it is the
    only code that assigns ``Dues.status``.

    Args:
        dues: Dues to update (payments must be loaded when not given)
        payments: Payments to classify against (default: dues.payments)

    Returns:
        The classifier verdict that was stored
    """
    result = classify(dues, dues.payments if payments is None else payments)
    dues.status = result.status
    return result


__all__ = ["DuesStatusResult", "classify", "classify_amounts", "reconcile_dues_status"]
