from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from app.models.booking import Booking
from app.services.money import from_cents

class BookingCreate(BaseModel):
    customerId: int
    carId: int
    startDate: datetime
    endDate: datetime
    pickupLoc: str = ""
    dropoffLoc: str = ""

class BookingPriceIn(BaseModel):
    totalAmount: Decimal

class BookingCancelIn(BaseModel):
    reason: str = ""

class BookingOut(BaseModel):
    id: int
    customerId: int
    carId: int
    startDate: datetime
    endDate: datetime
    pickupLoc: str = ""
    dropoffLoc: str = ""
    totalAmount: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    paymentStatus: str
    bookingStatus: str
    # derived from the booking's extensions
    isExtend: bool = False
    isPay: bool = False
    newEndDate: Optional[datetime] = None
    isExtended: bool = False
    returnFee: Optional[Decimal] = None
    returnedAt: Optional[datetime] = None

    @classmethod
    def from_booking(cls, b: Booking) -> "BookingOut":
        return cls(
            id=b.id,
            customerId=b.customer_id,
            carId=b.car_id,
            startDate=b.start_date,
            endDate=b.end_date,
            pickupLoc=b.pickup_loc or "",
            dropoffLoc=b.dropoff_loc or "",
            totalAmount=from_cents(b.total_amount_cents),
            balance=from_cents(b.balance_cents),
            paymentStatus=b.payment_status,
            bookingStatus=b.booking_status,
            isExtend=b.is_extend,
            isPay=b.is_pay,
            newEndDate=b.new_end_date,
            isExtended=b.is_extended,
            returnFee=from_cents(b.return_fee_cents),
            returnedAt=b.returned_at,
        )

class BalanceOut(BaseModel):
    bookingId: int
    totalPaid: Decimal
    balance: Optional[Decimal] = None
    paymentStatus: str

class ReturnPaymentIn(BaseModel):
    amount: Decimal | str
    paymentMethod: str = "Cash"
    gcashNo: Optional[str] = None
    referenceNo: Optional[str] = None

class ReturnIn(BaseModel):
    # High, Mid or Low
    gasLevelAtRelease: str
    gasLevel: str
    releasedEquipment: list[str] = []
    returnedEquipment: list[str] = []
    damage: str = "none"  # none, minor, major
    isClean: bool = True
    hasStain: bool = False
    payment: Optional[ReturnPaymentIn] = None
