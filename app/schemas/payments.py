from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional

from app.models.payment import Payment
from app.models.refund import Refund
from app.services.money import from_cents


class PaymentIn(BaseModel):
    bookingId: int
    customerId: int
    # str accepted so "4000.50" is parsed exactly; validated by the ledger
    amount: Decimal | str
    paymentMethod: str = "Cash"
    gcashNo: Optional[str] = None
    referenceNo: Optional[str] = None
    paidDate: Optional[str] = None
    description: Optional[str] = None
    extensionId: Optional[int] = None


class PaymentOut(BaseModel):
    paymentId: int
    bookingId: int
    customerId: int
    extensionId: Optional[int] = None
    description: str = ""
    paymentMethod: str
    gcashNo: Optional[str] = None
    referenceNo: Optional[str] = None
    amount: Decimal
    runningBalance: Optional[Decimal] = None
    paidDate: datetime

    @classmethod
    def from_payment(cls, p: Payment) -> "PaymentOut":
        return cls(
            paymentId=p.id,
            bookingId=p.booking_id,
            customerId=p.customer_id,
            extensionId=p.extension_id,
            description=p.description or "",
            paymentMethod=p.payment_method,
            gcashNo=p.gcash_no,
            referenceNo=p.reference_no,
            amount=from_cents(p.amount_cents),
            runningBalance=from_cents(p.balance_cents),
            paidDate=p.paid_date,
        )


class RefundIn(BaseModel):
    bookingId: int
    customerId: int
    amount: Decimal | str
    refundMethod: str = "Cash"
    gcashNo: Optional[str] = None
    referenceNo: Optional[str] = None
    refundDate: Optional[str] = None
    description: str = Field(default="")


class RefundOut(BaseModel):
    refundId: int
    bookingId: int
    customerId: int
    refundMethod: str
    gcashNo: Optional[str] = None
    referenceNo: Optional[str] = None
    amount: Decimal
    refundDate: datetime
    description: str = ""

    @classmethod
    def from_refund(cls, r: Refund) -> "RefundOut":
        return cls(
            refundId=r.id,
            bookingId=r.booking_id,
            customerId=r.customer_id,
            refundMethod=r.refund_method,
            gcashNo=r.gcash_no,
            referenceNo=r.reference_no,
            amount=from_cents(r.amount_cents),
            refundDate=r.refund_date,
            description=r.description or "",
        )
