import math
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Conflict, InvalidArgument, NotFound
from app.core.logging import get_logger
from app.models.booking import Booking, BookingStatus
from app.models.extension import Extension, ExtensionStatus
from app.models.payment import Payment
from app.services.audit_service import log_audit
from app.services.balance_service import apply_balances
from app.services.clock import as_utc, parse_datetime, utcnow
from app.services.locking import booking_transaction
from app.services.money import ensure_in_range, from_cents, to_cents

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _get_extension(db: Session, extension_id: int) -> Extension:
    ext = db.get(Extension, extension_id)
    if not ext:
        raise NotFound(f"extension {extension_id} not found")
    return ext


def _locked_extension(db: Session, extension_id: int) -> Extension:
    return db.get(Extension, extension_id, with_for_update=True, populate_existing=True)


def active_extension(db: Session, booking_id: int) -> Extension | None:
    return db.execute(
        select(Extension)
        .where(Extension.booking_id == booking_id, Extension.status.in_(ExtensionStatus.ACTIVE))
        .order_by(Extension.id.desc())
    ).scalars().first()


def extension_paid_cents(db: Session, extension_id: int) -> int:
    return int(db.execute(
        select(func.coalesce(func.sum(Payment.amount_cents), 0)).where(Payment.extension_id == extension_id)
    ).scalar_one())


def is_fee_settled(db: Session, ext: Extension, booking: Booking) -> bool:
    """Fee is settled by payments tagged with the extension, or by the booking being fully paid."""
    if ext.fee_cents is None:
        return False
    if extension_paid_cents(db, ext.id) >= ext.fee_cents:
        return True
    return booking.balance_cents is not None and booking.balance_cents <= 0


def extension_days(previous_end: datetime, new_end: datetime) -> int:
    seconds = (as_utc(new_end) - as_utc(previous_end)).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def default_fee_cents(booking: Booking, ext: Extension) -> int:
    """Whole extra days, rounded up, at the car's daily rate."""
    rate = booking.car.rent_price_cents if booking.car else 0
    return extension_days(ext.previous_end_date, ext.new_end_date) * (rate or 0)


def request_extension(db: Session, booking_id: int, new_end_date, actor: str = "system", now: datetime | None = None) -> Extension:
    new_end = parse_datetime(new_end_date, "new_end_date")
    now = now or utcnow()
    with booking_transaction(db, booking_id) as booking:
        current = active_extension(db, booking.id)
        if current:
            raise Conflict(f"booking {booking.id} already has a {current.status} extension ({current.id})")
        if booking.booking_status != BookingStatus.IN_PROGRESS:
            raise Conflict(f"only in-progress bookings can be extended (booking is {booking.booking_status})")
        if new_end <= as_utc(booking.end_date):
            raise InvalidArgument("new_end_date must be after the current end date")

        ext = Extension(
            booking_id=booking.id,
            previous_end_date=booking.end_date,
            new_end_date=new_end,
            status=ExtensionStatus.PENDING,
            requested_at=now,
        )
        db.add(ext)
        db.flush()
        log_audit(db, actor, "extension.requested", "extension", ext.id, {"bookingId": booking.id, "newEndDate": new_end.isoformat()})
    logger.info("booking %s: extension %s requested until %s", booking_id, ext.id, new_end.isoformat())
    return ext


def approve_extension(db: Session, extension_id: int, fee=None, actor: str = "system", now: datetime | None = None) -> Extension:
    """pending -> approved. The fee goes onto total_amount now so the balance shows it while unpaid."""
    now = now or utcnow()
    booking_id = _get_extension(db, extension_id).booking_id
    with booking_transaction(db, booking_id) as booking:
        ext = _locked_extension(db, extension_id)
        if ext.status != ExtensionStatus.PENDING:
            raise Conflict(f"extension {extension_id} is {ext.status}, only pending extensions can be approved")
        if booking.total_amount_cents is None:
            raise Conflict(f"booking {booking.id} has not been priced yet")
        if fee is None:
            fee_cents = default_fee_cents(booking, ext)
        else:
            fee_cents = to_cents(fee, "fee")
            if fee_cents < 0:
                raise InvalidArgument("fee must not be negative")

        new_total = ensure_in_range(booking.total_amount_cents + fee_cents, "total_amount")
        ext.fee_cents = fee_cents
        ext.status = ExtensionStatus.APPROVED
        ext.approved_at = now
        ext.payment_deadline = now + timedelta(hours=settings.EXTENSION_PAYMENT_DEADLINE_HOURS)
        booking.total_amount_cents = new_total
        summary, _ = apply_balances(db, booking)
        log_audit(db, actor, "extension.approved", "extension", ext.id, {
            "bookingId": booking.id,
            "fee": str(from_cents(fee_cents)),
            "totalAmount": str(from_cents(booking.total_amount_cents)),
            "balance": str(from_cents(summary.balance_cents)),
        })
    logger.info("booking %s: extension %s approved, fee %s", booking_id, extension_id, from_cents(fee_cents))
    return ext


def _close_extension(db: Session, extension_id: int, status: str, reason: str, actor: str, now: datetime | None) -> Extension:
    now = now or utcnow()
    booking_id = _get_extension(db, extension_id).booking_id
    with booking_transaction(db, booking_id) as booking:
        ext = _locked_extension(db, extension_id)
        _close_locked(db, booking, ext, status, reason, actor, now)
    logger.info("booking %s: extension %s %s", booking_id, extension_id, status)
    return ext


def _close_locked(db: Session, booking: Booking, ext: Extension, status: str, reason: str, actor: str, now: datetime) -> None:
    if not ext.is_active:
        raise Conflict(f"extension {ext.id} is already {ext.status}")
    was_approved = ext.status == ExtensionStatus.APPROVED
    if was_approved and ext.fee_cents:
        booking.total_amount_cents -= ext.fee_cents
    ext.status = status
    ext.rejection_reason = reason or ""
    ext.decided_at = now
    apply_balances(db, booking)
    log_audit(db, actor, f"extension.{status}", "extension", ext.id, {
        "bookingId": booking.id,
        "reason": ext.rejection_reason,
        "feeReverted": str(from_cents(ext.fee_cents)) if was_approved else None,
    })


def reject_extension(db: Session, extension_id: int, reason: str = "", actor: str = "system", now: datetime | None = None) -> Extension:
    return _close_extension(db, extension_id, ExtensionStatus.REJECTED, reason, actor, now)


def cancel_extension(db: Session, extension_id: int, reason: str = "", actor: str = "system", now: datetime | None = None) -> Extension:
    return _close_extension(db, extension_id, ExtensionStatus.ADMIN_CANCELLED, reason, actor, now)


def cancel_active_extension(db: Session, booking: Booking, reason: str, actor: str, now: datetime) -> Extension | None:
    """For callers already holding the booking's transaction (e.g. booking cancellation)."""
    ext = active_extension(db, booking.id)
    if ext:
        _close_locked(db, booking, ext, ExtensionStatus.ADMIN_CANCELLED, reason, actor, now)
    return ext


def complete_extension(db: Session, extension_id: int, actor: str = "system", now: datetime | None = None) -> Booking:
    """approved -> completed once the fee is paid; the booking takes the new end date."""
    now = now or utcnow()
    booking_id = _get_extension(db, extension_id).booking_id
    with booking_transaction(db, booking_id) as booking:
        ext = _locked_extension(db, extension_id)
        if ext.status != ExtensionStatus.APPROVED:
            raise Conflict(f"extension {extension_id} is {ext.status}, only approved extensions can be completed")
        if not is_fee_settled(db, ext, booking):
            raise Conflict(f"extension {extension_id} fee of {from_cents(ext.fee_cents)} has not been paid")

        previous_end = booking.end_date
        booking.end_date = ext.new_end_date
        ext.status = ExtensionStatus.COMPLETED
        ext.decided_at = now
        apply_balances(db, booking)
        log_audit(db, actor, "extension.completed", "extension", ext.id, {
            "bookingId": booking.id,
            "previousEndDate": as_utc(previous_end).isoformat(),
            "endDate": as_utc(ext.new_end_date).isoformat(),
        })
    logger.info("booking %s: extension %s completed", booking_id, extension_id)
    return booking


def list_extensions(db: Session, booking_id: int) -> list[Extension]:
    if not db.get(Booking, booking_id):
        raise NotFound(f"booking {booking_id} not found")
    return list(db.execute(select(Extension).where(Extension.booking_id == booking_id).order_by(Extension.id.asc())).scalars())


def expire_overdue_extensions(db: Session, now: datetime | None = None) -> dict:
    """Cancel approved extensions whose payment deadline passed without the fee being paid."""
    now = now or utcnow()
    candidates = list(db.execute(
        select(Extension.id, Extension.booking_id)
        .where(
            Extension.status == ExtensionStatus.APPROVED,
            Extension.payment_deadline.is_not(None),
            Extension.payment_deadline <= now,
        )
        .order_by(Extension.id.asc())
    ).all())
    db.rollback()

    cancelled = []
    for extension_id, booking_id in candidates:
        with booking_transaction(db, booking_id) as booking:
            ext = _locked_extension(db, extension_id)
            if ext.status != ExtensionStatus.APPROVED or is_fee_settled(db, ext, booking):
                continue
            deadline = as_utc(ext.payment_deadline)
            _close_locked(
                db, booking, ext, ExtensionStatus.ADMIN_CANCELLED,
                f"Payment deadline expired ({deadline:%b %d, %Y %I:%M %p} UTC)", "scheduler", now,
            )
            cancelled.append(extension_id)
    if cancelled:
        logger.warning("auto-cancelled %d overdue extension(s): %s", len(cancelled), cancelled)
    return {"checked": len(candidates), "cancelled": len(cancelled), "extensionIds": cancelled}
