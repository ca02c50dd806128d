from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_actor
from app.schemas.booking import BalanceOut
from app.services.audit_service import log_audit
from app.services.balance_service import recalculate_balances, reconcile_all
from app.services.money import from_cents

router = APIRouter(tags=["ledger"])

@router.post("/bookings/{booking_id}/recalculate", response_model=BalanceOut)
def recalculate(booking_id: int, db: Session = Depends(get_db)):
    s = recalculate_balances(db, booking_id)
    return BalanceOut(bookingId=booking_id, totalPaid=from_cents(s.total_paid_cents),
                      balance=from_cents(s.balance_cents), paymentStatus=s.payment_status)

@router.post("/admin/ledger/reconcile")
def reconcile(db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    result = reconcile_all(db)
    log_audit(db, actor, "ledger.reconciled", "ledger", "all", result)
    db.commit()
    return result
