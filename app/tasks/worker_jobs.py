"""Job bodies for the Celery tasks in app.tasks.jobs. Each job owns its session."""
from typing import Callable

from sqlalchemy import inspect
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.core.logging import get_logger, setup_logging
from app.services.balance_service import recalculate_balances, reconcile_all
from app.services.extension_service import expire_overdue_extensions

setup_logging()
logger = get_logger(__name__)

LEDGER_TABLES = ("bookings", "payments", "extensions")


def ledger_tables_ready(db: Session) -> bool:
    tables = inspect(db.connection())
    return all(tables.has_table(name) for name in LEDGER_TABLES)


def _run_scheduled(name: str, job: Callable[[Session], dict]) -> dict:
    """Run one beat job. Database errors other than an unmigrated schema propagate to Celery."""
    db: Session = SessionLocal()
    try:
        if not ledger_tables_ready(db):
            # beat can fire before the first migration on a fresh deploy
            logger.warning("%s skipped: ledger tables missing", name)
            return {"skipped": True, "reason": "missing_tables"}
        db.rollback()
        result = job(db)
    finally:
        db.close()
    logger.info("%s: %s", name, result)
    return result


def expire_extensions() -> dict:
    return _run_scheduled("expire_extensions", expire_overdue_extensions)


def reconcile_ledgers() -> dict:
    """A non-zero 'corrected' count means some write path bypassed the ledger."""
    return _run_scheduled("reconcile_ledgers", reconcile_all)


def recalculate_booking(booking_id: int) -> dict:
    db: Session = SessionLocal()
    try:
        s = recalculate_balances(db, booking_id)
    finally:
        db.close()
    return {"bookingId": booking_id, "totalPaidCents": s.total_paid_cents,
            "balanceCents": s.balance_cents, "paymentStatus": s.payment_status}
