from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_actor
from app.schemas.booking import BookingCreate, BookingOut, BookingPriceIn, BookingCancelIn, ReturnIn
from app.services.fee_service import ReturnInspection
from app.services import booking_service

router = APIRouter(tags=["bookings"])

@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking(body: BookingCreate, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    b = booking_service.create_booking(
        db, body.customerId, body.carId, body.startDate, body.endDate,
        pickup_loc=body.pickupLoc, dropoff_loc=body.dropoffLoc, actor=actor,
    )
    return BookingOut.from_booking(b)

@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return BookingOut.from_booking(booking_service.get_booking(db, booking_id))

@router.post("/bookings/{booking_id}/price", response_model=BookingOut)
def price_booking(booking_id: int, body: BookingPriceIn, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return BookingOut.from_booking(booking_service.price_booking(db, booking_id, body.totalAmount, actor=actor))

@router.post("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, body: BookingCancelIn | None = None, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    reason = body.reason if body else ""
    return BookingOut.from_booking(booking_service.cancel_booking(db, booking_id, reason=reason, actor=actor))

@router.post("/bookings/{booking_id}/complete", response_model=BookingOut)
def complete_booking(booking_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    return BookingOut.from_booking(booking_service.complete_booking(db, booking_id, actor=actor))

@router.post("/bookings/{booking_id}/return", response_model=BookingOut)
def return_booking(booking_id: int, body: ReturnIn, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Check the car back in: return fees go onto the bill, optionally paid on the spot."""
    inspection = ReturnInspection(
        gas_level_at_release=body.gasLevelAtRelease,
        gas_level=body.gasLevel,
        released_equipment=tuple(body.releasedEquipment),
        returned_equipment=tuple(body.returnedEquipment),
        damage=body.damage,
        is_clean=body.isClean,
        has_stain=body.hasStain,
    )
    pay = body.payment
    b = booking_service.complete_booking(
        db, booking_id, inspection=inspection,
        payment_amount=pay.amount if pay else None,
        payment_method=pay.paymentMethod if pay else "Cash",
        gcash_no=pay.gcashNo if pay else None,
        reference_no=pay.referenceNo if pay else None,
        actor=actor,
    )
    return BookingOut.from_booking(b)
