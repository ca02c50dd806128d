from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_actor
from app.schemas.payments import PaymentIn, PaymentOut
from app.schemas.booking import BalanceOut
from app.services import payment_service
from app.services.money import from_cents

router = APIRouter(tags=["payments"])


def _record(body: PaymentIn, db: Session, actor: str, idempotency_key: str | None, release: bool) -> PaymentOut:
    p = payment_service.record_payment(
        db,
        body.bookingId,
        body.customerId,
        body.amount,
        method=body.paymentMethod,
        gcash_no=body.gcashNo,
        reference_no=body.referenceNo,
        paid_at=body.paidDate,
        description=body.description,
        extension_id=body.extensionId,
        idempotency_key=idempotency_key,
        actor=actor,
        release=release,
    )
    return PaymentOut.from_payment(p)


@router.get("/payments", response_model=list[PaymentOut])
def list_payments(bookingId: int | None = None, db: Session = Depends(get_db)):
    return [PaymentOut.from_payment(p) for p in payment_service.list_payments(db, bookingId)]


@router.post("/payments", response_model=PaymentOut, status_code=201)
def create_payment(body: PaymentIn, db: Session = Depends(get_db), actor: str = Depends(get_actor),
                   idempotency_key: str | None = Header(default=None)):
    return _record(body, db, actor, idempotency_key, release=False)


@router.post("/payments/release", response_model=PaymentOut, status_code=201)
def create_release_payment(body: PaymentIn, db: Session = Depends(get_db), actor: str = Depends(get_actor),
                           idempotency_key: str | None = Header(default=None)):
    """Payment taken at vehicle hand-over; moves a Confirmed booking to In Progress."""
    return _record(body, db, actor, idempotency_key, release=True)


@router.delete("/payments/{payment_id}", response_model=BalanceOut)
def delete_payment(payment_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    booking_id = payment_service.get_payment(db, payment_id).booking_id
    s = payment_service.delete_payment(db, payment_id, actor=actor)
    return BalanceOut(bookingId=booking_id, totalPaid=from_cents(s.total_paid_cents),
                      balance=from_cents(s.balance_cents), paymentStatus=s.payment_status)
