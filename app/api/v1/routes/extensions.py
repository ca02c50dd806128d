from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_actor
from app.schemas.booking import BookingOut
from app.schemas.extension import ExtensionRequestIn, ExtensionApproveIn, ExtensionDecisionIn, ExtensionOut
from app.services import extension_service

router = APIRouter(tags=["extensions"])

@router.get("/bookings/{booking_id}/extensions", response_model=list[ExtensionOut])
def list_extensions(booking_id: int, db: Session = Depends(get_db)):
    return [ExtensionOut.from_extension(e) for e in extension_service.list_extensions(db, booking_id)]

@router.post("/bookings/{booking_id}/extensions", response_model=ExtensionOut, status_code=201)
def request_extension(booking_id: int, body: ExtensionRequestIn, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    e = extension_service.request_extension(db, booking_id, body.newEndDate, actor=actor)
    return ExtensionOut.from_extension(e)

@router.post("/extensions/{extension_id}/approve", response_model=ExtensionOut)
def approve_extension(extension_id: int, body: ExtensionApproveIn | None = None, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    fee = body.fee if body else None
    return ExtensionOut.from_extension(extension_service.approve_extension(db, extension_id, fee=fee, actor=actor))

@router.post("/extensions/{extension_id}/reject", response_model=ExtensionOut)
def reject_extension(extension_id: int, body: ExtensionDecisionIn | None = None, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    reason = body.reason if body else ""
    return ExtensionOut.from_extension(extension_service.reject_extension(db, extension_id, reason=reason, actor=actor))

@router.post("/extensions/{extension_id}/cancel", response_model=ExtensionOut)
def cancel_extension(extension_id: int, body: ExtensionDecisionIn | None = None, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    reason = body.reason if body else ""
    return ExtensionOut.from_extension(extension_service.cancel_extension(db, extension_id, reason=reason, actor=actor))

@router.post("/extensions/{extension_id}/complete", response_model=BookingOut)
def complete_extension(extension_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return BookingOut.from_booking(extension_service.complete_extension(db, extension_id, actor=actor))
