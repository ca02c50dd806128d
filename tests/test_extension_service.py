from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.errors import Conflict, InvalidArgument, NotFound
from app.models.audit_log import AuditLog
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.extension import ExtensionStatus
from app.services import booking_service
from app.services.clock import as_utc
from app.services.extension_service import (
    approve_extension,
    cancel_extension,
    complete_extension,
    expire_overdue_extensions,
    list_extensions,
    reject_extension,
    request_extension,
)
from app.services.payment_service import record_payment

from conftest import T0


def end_of(db, booking_id):
    return as_utc(db.get(Booking, booking_id, populate_existing=True).end_date)


def test_extension_full_flow(db, in_progress_booking, customer):
    b = in_progress_booking("5000")
    record_payment(db, b.id, customer.id, "5000")
    db.refresh(b)
    assert b.payment_status == PaymentStatus.PAID

    new_end = end_of(db, b.id) + timedelta(days=2)
    ext = request_extension(db, b.id, new_end)
    db.refresh(b)
    assert b.is_extend is True
    assert b.is_pay is False
    assert as_utc(b.new_end_date) == new_end

    ext = approve_extension(db, ext.id, now=T0)
    db.refresh(b)
    assert ext.fee_cents == 2000_00
    assert b.total_amount_cents == 7000_00
    assert b.balance_cents == 2000_00
    assert b.payment_status == PaymentStatus.UNPAID
    assert b.is_pay is False
    assert as_utc(ext.payment_deadline) == T0 + timedelta(hours=24)

    record_payment(db, b.id, customer.id, "2000", extension_id=ext.id)
    db.refresh(b)
    assert b.balance_cents == 0
    assert b.is_pay is True

    b = complete_extension(db, ext.id)
    assert as_utc(b.end_date) == new_end
    assert b.is_extend is False
    assert b.is_pay is False
    assert b.new_end_date is None
    assert b.is_extended is True
    assert b.payment_status == PaymentStatus.PAID


def test_partial_days_round_up(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1, hours=3))
    ext = approve_extension(db, ext.id)
    assert ext.fee_cents == 2 * 1000_00


def test_explicit_fee_overrides_rate(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=3))
    ext = approve_extension(db, ext.id, fee="1500.50")
    db.refresh(b)
    assert ext.fee_cents == 1500_50
    assert b.total_amount_cents == 6500_50

    ext2 = request_extension(db, in_progress_booking("1000").id, T0 + timedelta(days=9))
    with pytest.raises(InvalidArgument):
        approve_extension(db, ext2.id, fee="-1")


def test_second_active_extension_conflicts(db, in_progress_booking):
    b = in_progress_booking("5000")
    request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    with pytest.raises(Conflict):
        request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    assert len(list_extensions(db, b.id)) == 1


def test_new_extension_allowed_after_terminal_one(db, in_progress_booking):
    b = in_progress_booking("5000")
    first = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    reject_extension(db, first.id, reason="car is booked")
    second = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    assert [e.status for e in list_extensions(db, b.id)] == [ExtensionStatus.REJECTED, ExtensionStatus.PENDING]
    assert second.id != first.id


def test_request_requires_in_progress_booking(db, make_booking):
    b = make_booking(total="5000")
    assert b.booking_status == BookingStatus.CONFIRMED
    with pytest.raises(Conflict):
        request_extension(db, b.id, T0 + timedelta(days=10))


def test_new_end_must_be_after_current_end(db, in_progress_booking):
    b = in_progress_booking("5000")
    with pytest.raises(InvalidArgument):
        request_extension(db, b.id, end_of(db, b.id))
    with pytest.raises(InvalidArgument):
        request_extension(db, b.id, "not a date")
    assert list_extensions(db, b.id) == []


def test_complete_before_fee_is_paid_conflicts(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    with pytest.raises(Conflict):
        complete_extension(db, ext.id)

    approve_extension(db, ext.id)
    with pytest.raises(Conflict):
        complete_extension(db, ext.id)
    original_end = T0 + timedelta(days=4)
    assert end_of(db, b.id) == original_end


def test_untagged_payment_settling_booking_settles_fee(db, in_progress_booking, customer):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    approve_extension(db, ext.id)
    record_payment(db, b.id, customer.id, "6000")
    b = complete_extension(db, ext.id)
    assert b.is_extended is True


def test_reject_approved_extension_reverts_fee(db, in_progress_booking, customer):
    b = in_progress_booking("5000")
    record_payment(db, b.id, customer.id, "1000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    approve_extension(db, ext.id)
    db.refresh(b)
    assert b.balance_cents == 6000_00

    ext = reject_extension(db, ext.id, reason="vehicle needed elsewhere")
    db.refresh(b)
    assert ext.status == ExtensionStatus.REJECTED
    assert ext.rejection_reason == "vehicle needed elsewhere"
    assert b.total_amount_cents == 5000_00
    assert b.balance_cents == 4000_00
    assert b.is_extend is False

    with pytest.raises(Conflict):
        reject_extension(db, ext.id)
    with pytest.raises(Conflict):
        approve_extension(db, ext.id)


def test_cancel_pending_extension_keeps_total(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    ext = cancel_extension(db, ext.id, reason="customer changed plans")
    db.refresh(b)
    assert ext.status == ExtensionStatus.ADMIN_CANCELLED
    assert b.total_amount_cents == 5000_00


def test_payment_tagged_to_pending_extension_conflicts(db, in_progress_booking, customer):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    with pytest.raises(Conflict):
        record_payment(db, b.id, customer.id, "1000", extension_id=ext.id)


def test_unknown_extension_is_not_found(db):
    with pytest.raises(NotFound):
        approve_extension(db, 999)
    with pytest.raises(NotFound):
        complete_extension(db, 999)
    with pytest.raises(NotFound):
        list_extensions(db, 999)


def test_expire_overdue_extensions(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    approve_extension(db, ext.id, now=T0)

    early = expire_overdue_extensions(db, now=T0 + timedelta(hours=23))
    assert early["cancelled"] == 0

    result = expire_overdue_extensions(db, now=T0 + timedelta(hours=25))
    assert result == {"checked": 1, "cancelled": 1, "extensionIds": [ext.id]}
    b = db.get(Booking, b.id, populate_existing=True)
    assert b.total_amount_cents == 5000_00
    assert b.is_extend is False
    [closed] = list_extensions(db, b.id)
    assert closed.status == ExtensionStatus.ADMIN_CANCELLED
    assert closed.rejection_reason.startswith("Payment deadline expired")

    actors = db.execute(select(AuditLog.actor).where(AuditLog.action == "extension.admin-cancelled")).scalars().all()
    assert actors == ["scheduler"]


def test_expire_skips_paid_extensions(db, in_progress_booking, customer):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    approve_extension(db, ext.id, now=T0)
    record_payment(db, b.id, customer.id, "2000", extension_id=ext.id)

    result = expire_overdue_extensions(db, now=T0 + timedelta(days=3))
    assert result["checked"] == 1
    assert result["cancelled"] == 0


def test_cancel_booking_cancels_active_extension(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    approve_extension(db, ext.id)

    b = booking_service.cancel_booking(db, b.id, reason="no-show")
    assert b.booking_status == BookingStatus.CANCELLED
    assert b.total_amount_cents == 5000_00
    assert [e.status for e in list_extensions(db, b.id)] == [ExtensionStatus.ADMIN_CANCELLED]


def test_complete_booking_blocked_by_active_extension(db, in_progress_booking):
    b = in_progress_booking("5000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=2))
    with pytest.raises(Conflict):
        booking_service.complete_booking(db, b.id)
    reject_extension(db, ext.id)
    b = booking_service.complete_booking(db, b.id)
    assert b.booking_status == BookingStatus.COMPLETED


def test_fee_that_overflows_total_is_rejected(db, in_progress_booking):
    b = in_progress_booking("21000000")
    ext = request_extension(db, b.id, end_of(db, b.id) + timedelta(days=1))
    with pytest.raises(InvalidArgument):
        approve_extension(db, ext.id, fee="1000000")

    b = db.get(Booking, b.id, populate_existing=True)
    assert b.total_amount_cents == 21000000_00
    assert [e.status for e in list_extensions(db, b.id)] == [ExtensionStatus.PENDING]
