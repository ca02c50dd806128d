from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base


class ExtensionStatus:
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    ADMIN_CANCELLED = "admin-cancelled"

    ACTIVE = (PENDING, APPROVED)
    TERMINAL = (COMPLETED, REJECTED, ADMIN_CANCELLED)


class Extension(Base):
    __tablename__ = "extensions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), index=True)

    previous_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    new_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    fee_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)  # set at approval

    status: Mapped[str] = mapped_column(String(20), default=ExtensionStatus.PENDING, index=True)
    rejection_reason: Mapped[str] = mapped_column(String(500), default="")
    payment_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="extensions")
    payments = relationship("Payment", order_by="Payment.id", viewonly=True)

    @property
    def is_active(self) -> bool:
        return self.status in ExtensionStatus.ACTIVE

    @property
    def paid_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    @property
    def is_fee_paid(self) -> bool:
        """Tagged payments cover the fee, or the whole booking is settled."""
        if self.status != ExtensionStatus.APPROVED or self.fee_cents is None:
            return False
        if self.paid_cents >= self.fee_cents:
            return True
        balance = self.booking.balance_cents if self.booking else None
        return balance is not None and balance <= 0
