from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.models.booking import Booking, PaymentStatus
from app.models.payment import Payment
from app.models.refund import Refund
from app.services.locking import booking_transaction
from app.services.money import ensure_in_range

logger = get_logger(__name__)


@dataclass(frozen=True)
class BalanceSummary:
    total_paid_cents: int
    balance_cents: int | None
    payment_status: str


def derive_payment_status(total_amount_cents: int | None, total_paid_cents: int, total_refunded_cents: int = 0) -> str:
    if total_amount_cents is None:
        return PaymentStatus.PENDING
    if total_paid_cents > 0 and total_refunded_cents >= total_paid_cents:
        return PaymentStatus.REFUNDED
    if total_amount_cents - total_paid_cents <= 0:
        return PaymentStatus.PAID
    return PaymentStatus.UNPAID


def calculate_balance(total_amount_cents: int | None, amounts: Iterable[int], total_refunded_cents: int = 0) -> BalanceSummary:
    """Total paid, remaining balance and payment status for one booking. Pure."""
    total_paid = sum(amounts)
    balance = None if total_amount_cents is None else total_amount_cents - total_paid
    return BalanceSummary(
        total_paid_cents=total_paid,
        balance_cents=balance,
        payment_status=derive_payment_status(total_amount_cents, total_paid, total_refunded_cents),
    )


def running_balances(total_amount_cents: int | None, amounts: Iterable[int]) -> list[int | None]:
    """Balance left after each payment, in the order given."""
    out: list[int | None] = []
    paid = 0
    for amount in amounts:
        paid += amount
        out.append(None if total_amount_cents is None else total_amount_cents - paid)
    return out


def ordered_payments(db: Session, booking_id: int) -> list[Payment]:
    return list(
        db.execute(
            select(Payment)
            .where(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.asc(), Payment.id.asc())
        ).scalars()
    )


def total_refunded_cents(db: Session, booking_id: int) -> int:
    rows = db.execute(select(Refund.amount_cents).where(Refund.booking_id == booking_id)).scalars()
    return sum(rows)


def apply_balances(db: Session, booking: Booking) -> tuple[BalanceSummary, int]:
    """Rewrite payment snapshots and the booking's derived fields from the stored rows.

    Must run inside booking_transaction for the same booking. Flushes but does not commit.
    Returns the summary and how many rows were changed.
    """
    ensure_in_range(booking.total_amount_cents, "total_amount")
    db.flush()
    payments = ordered_payments(db, booking.id)
    amounts = [p.amount_cents for p in payments]
    summary = calculate_balance(booking.total_amount_cents, amounts, total_refunded_cents(db, booking.id))
    # snapshots only fall from total to balance, so checking both ends covers them
    ensure_in_range(summary.balance_cents, "balance")

    changed = 0
    for payment, snapshot in zip(payments, running_balances(booking.total_amount_cents, amounts)):
        if payment.balance_cents != snapshot:
            payment.balance_cents = snapshot
            changed += 1

    if booking.balance_cents != summary.balance_cents or booking.payment_status != summary.payment_status:
        booking.balance_cents = summary.balance_cents
        booking.payment_status = summary.payment_status
        changed += 1
    db.flush()
    return summary, changed


def recalculate_balances(db: Session, booking_id: int) -> BalanceSummary:
    """Idempotent repair pass over one booking's ledger."""
    with booking_transaction(db, booking_id) as booking:
        summary, changed = apply_balances(db, booking)
    if changed:
        logger.info("booking %s: recalculated, %d row(s) corrected", booking_id, changed)
    return summary


def reconcile_all(db: Session) -> dict:
    """Recalculate every booking. Replaces one-off balance fix scripts."""
    booking_ids = list(db.execute(select(Booking.id).order_by(Booking.id.asc())).scalars())
    db.rollback()
    corrected = []
    for booking_id in booking_ids:
        with booking_transaction(db, booking_id) as booking:
            _, changed = apply_balances(db, booking)
        if changed:
            corrected.append(booking_id)
    if corrected:
        logger.warning("reconcile: corrected %d booking(s): %s", len(corrected), corrected)
    return {"checked": len(booking_ids), "corrected": len(corrected), "bookingIds": corrected}
