from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import Conflict, InvalidArgument, NotFound
from app.core.logging import get_logger
from app.models.booking import Booking, BookingStatus
from app.models.extension import Extension, ExtensionStatus
from app.models.payment import Payment
from app.services.audit_service import log_audit
from app.services.balance_service import BalanceSummary, apply_balances, ordered_payments
from app.services.clock import parse_datetime, utcnow
from app.services.locking import booking_transaction
from app.services.money import ensure_in_range, from_cents, to_cents

logger = get_logger(__name__)

GCASH = "GCash"
RELEASE_DESCRIPTION = "Release Payment"
RETURN_FEES_DESCRIPTION = "Return fees payment"
# payments.idempotency_key is String(64)
IDEMPOTENCY_KEY_MAX_LENGTH = 64


def normalize_method_fields(method: str | None, gcash_no: str | None, reference_no: str | None) -> tuple[str, str | None, str | None]:
    """GCash needs both the wallet number and the reference number; other methods carry neither."""
    method = (method or "").strip()
    if not method:
        raise InvalidArgument("payment method is required")
    if method.lower() == GCASH.lower():
        gcash_no = (gcash_no or "").strip() or None
        reference_no = (reference_no or "").strip() or None
        if not gcash_no or not reference_no:
            raise InvalidArgument("GCash payments require both gcash_no and reference_no")
        return GCASH, gcash_no, reference_no
    return method, None, None


def positive_cents(amount, field: str = "amount") -> int:
    cents = to_cents(amount, field)
    if cents <= 0:
        raise InvalidArgument(f"{field} must be greater than zero")
    return cents


def parse_customer_id(customer_id) -> int:
    try:
        return int(customer_id)
    except (TypeError, ValueError):
        raise InvalidArgument("customer_id must be an integer")


def insert_payment(
    db: Session,
    booking: Booking,
    customer_id: int,
    amount_cents: int,
    method: str,
    gcash_no: str | None,
    reference_no: str | None,
    paid_date: datetime,
    description: str,
    extension_id: int | None,
    idempotency_key: str | None,
) -> tuple[Payment, BalanceSummary]:
    """Validate and stage one payment row. The caller holds booking_transaction for this booking."""
    if booking.booking_status == BookingStatus.CANCELLED:
        raise Conflict(f"booking {booking.id} is cancelled")
    if booking.total_amount_cents is None:
        raise Conflict(f"booking {booking.id} has not been priced yet")
    if customer_id != booking.customer_id:
        raise InvalidArgument(f"customer {customer_id} does not own booking {booking.id}")

    if extension_id is not None:
        ext = db.get(Extension, extension_id)
        if not ext or ext.booking_id != booking.id:
            raise NotFound(f"extension {extension_id} not found on booking {booking.id}")
        if ext.status != ExtensionStatus.APPROVED:
            raise Conflict(f"extension {extension_id} is {ext.status}, not approved")

    prior_paid = sum(p.amount_cents for p in ordered_payments(db, booking.id))
    snapshot = ensure_in_range(booking.total_amount_cents - prior_paid - amount_cents, "balance")
    payment = Payment(
        booking_id=booking.id,
        customer_id=customer_id,
        extension_id=extension_id,
        description=description,
        payment_method=method,
        gcash_no=gcash_no,
        reference_no=reference_no,
        amount_cents=amount_cents,
        balance_cents=snapshot,
        paid_date=paid_date,
        idempotency_key=idempotency_key,
    )
    db.add(payment)
    summary, _ = apply_balances(db, booking)
    return payment, summary


def normalize_idempotency_key(key: str | None) -> str | None:
    key = (key or "").strip() or None
    if key and len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise InvalidArgument(f"idempotency key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters")
    return key


def _check_replay(existing: Payment, customer_id: int, amount_cents: int, method: str, extension_id: int | None) -> None:
    """A reused key must describe the same payment."""
    mismatched = [
        name for name, stored, sent in (
            ("customerId", existing.customer_id, customer_id),
            ("amount", existing.amount_cents, amount_cents),
            ("paymentMethod", existing.payment_method, method),
            ("extensionId", existing.extension_id, extension_id),
        ) if stored != sent
    ]
    if mismatched:
        raise Conflict(
            f"idempotency key {existing.idempotency_key} was already used for payment {existing.id} with different details",
            paymentId=existing.id,
            fields=mismatched,
        )


def _existing_for_key(db: Session, booking_id: int, idempotency_key: str | None) -> Payment | None:
    if not idempotency_key:
        return None
    return db.execute(
        select(Payment).where(Payment.booking_id == booking_id, Payment.idempotency_key == idempotency_key)
    ).scalar_one_or_none()


def record_payment(
    db: Session,
    booking_id: int,
    customer_id,
    amount,
    method: str = "Cash",
    gcash_no: str | None = None,
    reference_no: str | None = None,
    paid_at=None,
    description: str | None = None,
    extension_id: int | None = None,
    idempotency_key: str | None = None,
    actor: str = "system",
    now: datetime | None = None,
    release: bool = False,
) -> Payment:
    """Append a payment to a booking and re-derive its balance and payment status atomically.

    With release=True the payment is the hand-over ("release") payment and a Confirmed
    booking moves to In Progress. A repeated idempotency_key returns the earlier payment.
    """
    customer_id = parse_customer_id(customer_id)
    amount_cents = positive_cents(amount)
    method, gcash_no, reference_no = normalize_method_fields(method, gcash_no, reference_no)
    paid_date = parse_datetime(paid_at, "paid_date", default=now or utcnow())
    if description is None:
        description = RELEASE_DESCRIPTION if release else ""
    idempotency_key = normalize_idempotency_key(idempotency_key)

    with booking_transaction(db, booking_id) as booking:
        existing = _existing_for_key(db, booking.id, idempotency_key)
        if existing:
            _check_replay(existing, customer_id, amount_cents, method, extension_id)
            logger.info("booking %s: idempotency key %s already used by payment %s", booking.id, idempotency_key, existing.id)
            return existing

        previous_status = booking.booking_status
        payment, summary = insert_payment(
            db, booking, customer_id, amount_cents, method, gcash_no, reference_no,
            paid_date, description, extension_id, idempotency_key,
        )
        if release and booking.booking_status == BookingStatus.CONFIRMED:
            booking.booking_status = BookingStatus.IN_PROGRESS

        log_audit(db, actor, "payment.release" if release else "payment.recorded", "booking", booking.id, {
            "paymentId": payment.id,
            "amount": str(from_cents(amount_cents)),
            "method": method,
            "balance": str(from_cents(summary.balance_cents)),
            "paymentStatus": summary.payment_status,
            "bookingStatus": {"from": previous_status, "to": booking.booking_status},
        })
        logger.info(
            "booking %s: payment %s of %s recorded, balance %s (%s)",
            booking.id, payment.id, from_cents(amount_cents), from_cents(summary.balance_cents), summary.payment_status,
        )
    return payment


def record_release_payment(db: Session, booking_id: int, customer_id, amount, **kwargs) -> Payment:
    return record_payment(db, booking_id, customer_id, amount, release=True, **kwargs)


def get_payment(db: Session, payment_id: int) -> Payment:
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFound(f"payment {payment_id} not found")
    return payment


def delete_payment(db: Session, payment_id: int, actor: str = "system") -> BalanceSummary:
    """Admin correction: drop one payment and re-derive every snapshot after it."""
    booking_id = get_payment(db, payment_id).booking_id

    with booking_transaction(db, booking_id) as booking:
        payment = db.get(Payment, payment_id, populate_existing=True)
        if not payment:
            raise NotFound(f"payment {payment_id} not found")
        amount_cents = payment.amount_cents
        db.delete(payment)
        summary, _ = apply_balances(db, booking)
        log_audit(db, actor, "payment.deleted", "booking", booking.id, {
            "paymentId": payment_id,
            "amount": str(from_cents(amount_cents)),
            "balance": str(from_cents(summary.balance_cents)),
            "paymentStatus": summary.payment_status,
        })
    logger.info("booking %s: payment %s deleted, balance %s", booking_id, payment_id, from_cents(summary.balance_cents))
    return summary


def list_payments(db: Session, booking_id: int | None = None) -> list[Payment]:
    q = select(Payment)
    if booking_id is not None:
        q = q.where(Payment.booking_id == booking_id)
    return list(db.execute(q.order_by(Payment.id.desc())).scalars())
