from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_actor
from app.schemas.payments import RefundIn, RefundOut
from app.services import refund_service

router = APIRouter(tags=["refunds"])

@router.get("/refunds", response_model=list[RefundOut])
def list_refunds(bookingId: int | None = None, db: Session = Depends(get_db)):
    return [RefundOut.from_refund(r) for r in refund_service.list_refunds(db, bookingId)]

@router.post("/refunds", response_model=RefundOut, status_code=201)
def create_refund(body: RefundIn, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    r = refund_service.record_refund(
        db, body.bookingId, body.customerId, body.amount,
        method=body.refundMethod, gcash_no=body.gcashNo, reference_no=body.referenceNo,
        refund_date=body.refundDate, description=body.description, actor=actor,
    )
    return RefundOut.from_refund(r)
