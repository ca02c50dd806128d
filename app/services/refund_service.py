from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import Conflict, InvalidArgument
from app.core.logging import get_logger
from app.models.refund import Refund
from app.services.audit_service import log_audit
from app.services.balance_service import apply_balances, ordered_payments, total_refunded_cents
from app.services.clock import parse_datetime, utcnow
from app.services.locking import booking_transaction
from app.services.money import from_cents
from app.services.payment_service import normalize_method_fields, parse_customer_id, positive_cents

logger = get_logger(__name__)


def record_refund(
    db: Session,
    booking_id: int,
    customer_id,
    amount,
    method: str = "Cash",
    gcash_no: str | None = None,
    reference_no: str | None = None,
    refund_date=None,
    description: str = "",
    actor: str = "system",
    now: datetime | None = None,
) -> Refund:
    """Return money to the customer. Kept apart from payments; it never changes the balance."""
    customer_id = parse_customer_id(customer_id)
    amount_cents = positive_cents(amount)
    method, gcash_no, reference_no = normalize_method_fields(method, gcash_no, reference_no)
    refund_date = parse_datetime(refund_date, "refund_date", default=now or utcnow())

    with booking_transaction(db, booking_id) as booking:
        if customer_id != booking.customer_id:
            raise InvalidArgument(f"customer {customer_id} does not own booking {booking.id}")
        total_paid = sum(p.amount_cents for p in ordered_payments(db, booking.id))
        refunded = total_refunded_cents(db, booking.id)
        if total_paid <= 0:
            raise Conflict(f"booking {booking.id} has no payments to refund")
        available = total_paid - refunded
        if amount_cents > available:
            raise Conflict(
                f"refund of {from_cents(amount_cents)} exceeds refundable {from_cents(available)}",
                totalPaid=str(from_cents(total_paid)),
                totalRefunded=str(from_cents(refunded)),
            )

        refund = Refund(
            booking_id=booking.id,
            customer_id=customer_id,
            refund_method=method,
            gcash_no=gcash_no,
            reference_no=reference_no,
            amount_cents=amount_cents,
            refund_date=refund_date,
            description=description or "",
        )
        db.add(refund)
        summary, _ = apply_balances(db, booking)
        log_audit(db, actor, "refund.recorded", "booking", booking.id, {
            "refundId": refund.id,
            "amount": str(from_cents(amount_cents)),
            "paymentStatus": summary.payment_status,
        })
    logger.info("booking %s: refund %s of %s recorded", booking_id, refund.id, from_cents(amount_cents))
    return refund


def list_refunds(db: Session, booking_id: int | None = None) -> list[Refund]:
    q = select(Refund)
    if booking_id is not None:
        q = q.where(Refund.booking_id == booking_id)
    return list(db.execute(q.order_by(Refund.id.desc())).scalars())
