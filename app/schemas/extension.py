from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from app.models.extension import Extension
from app.services.money import from_cents


class ExtensionRequestIn(BaseModel):
    newEndDate: str


class ExtensionApproveIn(BaseModel):
    # defaults to extra days x the car's daily rate
    fee: Optional[Decimal | str] = None


class ExtensionDecisionIn(BaseModel):
    reason: str = ""


class ExtensionOut(BaseModel):
    extensionId: int
    bookingId: int
    status: str
    previousEndDate: datetime
    newEndDate: datetime
    fee: Optional[Decimal] = None
    paymentDeadline: Optional[datetime] = None
    rejectionReason: str = ""

    @classmethod
    def from_extension(cls, e: Extension) -> "ExtensionOut":
        return cls(
            extensionId=e.id,
            bookingId=e.booking_id,
            status=e.status,
            previousEndDate=e.previous_end_date,
            newEndDate=e.new_end_date,
            fee=from_cents(e.fee_cents),
            paymentDeadline=e.payment_deadline,
            rejectionReason=e.rejection_reason or "",
        )
