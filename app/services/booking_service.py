from datetime import datetime

from sqlalchemy.orm import Session

from app.core.errors import Conflict, InvalidArgument, NotFound
from app.core.logging import get_logger
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.car import Car
from app.models.customer import Customer
from app.services.audit_service import log_audit
from app.services.balance_service import apply_balances
from app.services.clock import parse_datetime, utcnow
from app.services.extension_service import active_extension, cancel_active_extension
from app.services.fee_service import ReturnInspection, calculate_return_fees, get_fee_schedule
from app.services.locking import booking_transaction
from app.services.money import ensure_in_range, from_cents, to_cents
from app.services.payment_service import RETURN_FEES_DESCRIPTION, insert_payment, normalize_method_fields, positive_cents

logger = get_logger(__name__)


def get_booking(db: Session, booking_id: int) -> Booking:
    b = db.get(Booking, booking_id)
    if not b:
        raise NotFound(f"booking {booking_id} not found")
    return b


def create_booking(db: Session, customer_id: int, car_id: int, start_date, end_date,
                   pickup_loc: str = "", dropoff_loc: str = "", actor: str = "system") -> Booking:
    start = parse_datetime(start_date, "start_date")
    end = parse_datetime(end_date, "end_date")
    if end <= start:
        raise InvalidArgument("end_date must be after start_date")
    if not db.get(Customer, customer_id):
        raise NotFound(f"customer {customer_id} not found")
    if not db.get(Car, car_id):
        raise NotFound(f"car {car_id} not found")

    booking = Booking(
        customer_id=customer_id,
        car_id=car_id,
        start_date=start,
        end_date=end,
        pickup_loc=pickup_loc or "",
        dropoff_loc=dropoff_loc or "",
        booking_status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
    )
    db.add(booking)
    db.flush()
    log_audit(db, actor, "booking.created", "booking", booking.id, {"customerId": customer_id, "carId": car_id})
    db.commit()
    db.refresh(booking)
    logger.info("booking %s created for customer %s", booking.id, customer_id)
    return booking


def price_booking(db: Session, booking_id: int, total_amount, actor: str = "system") -> Booking:
    """Admin approval: set the price and confirm a pending booking."""
    total_cents = to_cents(total_amount, "total_amount")
    if total_cents < 0:
        raise InvalidArgument("total_amount must not be negative")
    with booking_transaction(db, booking_id) as booking:
        if booking.booking_status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise Conflict(f"booking {booking.id} is {booking.booking_status}, it can no longer be priced")
        previous = booking.total_amount_cents
        booking.total_amount_cents = total_cents
        booking.booking_status = BookingStatus.CONFIRMED
        summary, _ = apply_balances(db, booking)
        log_audit(db, actor, "booking.priced", "booking", booking.id, {
            "from": str(from_cents(previous)) if previous is not None else None,
            "to": str(from_cents(total_cents)),
            "balance": str(from_cents(summary.balance_cents)),
        })
    logger.info("booking %s priced at %s", booking_id, from_cents(total_cents))
    return booking


def cancel_booking(db: Session, booking_id: int, reason: str = "", actor: str = "system", now: datetime | None = None) -> Booking:
    now = now or utcnow()
    with booking_transaction(db, booking_id) as booking:
        if booking.booking_status in BookingStatus.TERMINAL:
            raise Conflict(f"booking {booking.id} is already {booking.booking_status}")
        cancel_active_extension(db, booking, reason or "booking cancelled", actor, now)
        previous = booking.booking_status
        booking.booking_status = BookingStatus.CANCELLED
        apply_balances(db, booking)
        log_audit(db, actor, "booking.cancelled", "booking", booking.id, {"from": previous, "reason": reason or ""})
    logger.info("booking %s cancelled", booking_id)
    return booking


def complete_booking(
    db: Session,
    booking_id: int,
    inspection: ReturnInspection | None = None,
    payment_amount=None,
    payment_method: str = "Cash",
    gcash_no: str | None = None,
    reference_no: str | None = None,
    actor: str = "system",
    now: datetime | None = None,
) -> Booking:
    """Vehicle return: In Progress -> Completed.

    With an inspection, the return fees are added to total_amount in the same transaction.
    payment_amount records a "Return fees payment" taken at the counter.
    """
    now = now or utcnow()
    if payment_amount is not None:
        amount_cents = positive_cents(payment_amount)
        payment_method, gcash_no, reference_no = normalize_method_fields(payment_method, gcash_no, reference_no)

    with booking_transaction(db, booking_id) as booking:
        if booking.booking_status != BookingStatus.IN_PROGRESS:
            raise Conflict(f"booking {booking.id} is {booking.booking_status}, only in-progress bookings can be completed")
        ext = active_extension(db, booking.id)
        if ext:
            raise Conflict(f"booking {booking.id} has a {ext.status} extension ({ext.id})")

        fee_cents = 0
        if inspection is not None:
            fee_cents = calculate_return_fees(get_fee_schedule(db), inspection)
            if fee_cents and booking.total_amount_cents is None:
                raise Conflict(f"booking {booking.id} has not been priced yet")
            if fee_cents:
                booking.total_amount_cents = ensure_in_range(booking.total_amount_cents + fee_cents, "total_amount")
            booking.return_fee_cents = fee_cents
        booking.returned_at = now

        payment = None
        if payment_amount is not None:
            payment, summary = insert_payment(
                db, booking, booking.customer_id, amount_cents, payment_method, gcash_no, reference_no,
                now, RETURN_FEES_DESCRIPTION, None, None,
            )
        else:
            summary, _ = apply_balances(db, booking)
        booking.booking_status = BookingStatus.COMPLETED
        log_audit(db, actor, "booking.completed", "booking", booking.id, {
            "returnFee": str(from_cents(fee_cents)),
            "paymentId": payment.id if payment else None,
            "balance": str(from_cents(summary.balance_cents)),
            "paymentStatus": summary.payment_status,
        })
    logger.info("booking %s returned, return fees %s", booking_id, from_cents(fee_cents))
    return booking
