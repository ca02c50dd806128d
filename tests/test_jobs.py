import pytest
from sqlalchemy.exc import OperationalError

from app.services.payment_service import record_payment
from app.models.booking import Booking
from app.tasks import worker_jobs
from app.tasks.celery_app import celery


def test_beat_schedule_points_at_registered_tasks():
    import app.tasks.jobs  # noqa: F401

    scheduled = {entry["task"] for entry in celery.conf.beat_schedule.values()}
    assert scheduled == {"app.tasks.jobs.expire_extensions", "app.tasks.jobs.reconcile_ledgers"}
    for name in scheduled | {"app.tasks.jobs.recalculate_booking"}:
        assert name in celery.tasks


def test_reconcile_job_repairs_ledger(monkeypatch, session_factory, db, make_booking, customer):
    b = make_booking(total="10000")
    record_payment(db, b.id, customer.id, "2500")
    b = db.get(Booking, b.id)
    b.balance_cents = 0
    db.commit()

    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    result = worker_jobs.reconcile_ledgers()
    assert result["bookingIds"] == [b.id]

    db.refresh(b)
    assert b.balance_cents == 7500_00


def test_recalculate_job_reports_summary(monkeypatch, session_factory, db, make_booking, customer):
    b = make_booking(total="10000")
    record_payment(db, b.id, customer.id, "2500")

    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    assert worker_jobs.recalculate_booking(b.id) == {
        "bookingId": b.id,
        "totalPaidCents": 2500_00,
        "balanceCents": 7500_00,
        "paymentStatus": "Unpaid",
    }


def test_expire_job_with_nothing_due(monkeypatch, session_factory):
    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    assert worker_jobs.expire_extensions() == {"checked": 0, "cancelled": 0, "extensionIds": []}


def test_jobs_skip_when_tables_missing(monkeypatch):
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool
    from app.db.session import make_engine

    empty = make_engine("sqlite://", poolclass=StaticPool)
    monkeypatch.setattr(worker_jobs, "SessionLocal", sessionmaker(bind=empty))
    assert worker_jobs.expire_extensions() == {"skipped": True, "reason": "missing_tables"}
    assert worker_jobs.reconcile_ledgers()["skipped"] is True
    empty.dispose()


def test_database_errors_are_not_reported_as_skips(monkeypatch, session_factory):
    def connection_lost(db):
        raise OperationalError("SELECT bookings.id FROM bookings", {}, Exception("server closed the connection unexpectedly"))

    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    monkeypatch.setattr(worker_jobs, "reconcile_all", connection_lost)
    with pytest.raises(OperationalError):
        worker_jobs.reconcile_ledgers()
