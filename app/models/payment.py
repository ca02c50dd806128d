from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base

class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("booking_id", "idempotency_key", name="uq_payments_booking_idempotency_key"),
        CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), index=True)
    extension_id: Mapped[int | None] = mapped_column(ForeignKey("extensions.id"), nullable=True, index=True)

    description: Mapped[str] = mapped_column(String(255), default="")
    payment_method: Mapped[str] = mapped_column(String(20), default="Cash")  # Cash, GCash, ...
    gcash_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reference_no: Mapped[str | None] = mapped_column(String(64), nullable=True)

    amount_cents: Mapped[int] = mapped_column(Integer)
    # running balance right after this payment, not the booking's current balance
    balance_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    paid_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    idempotency_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="payments")
    customer = relationship("Customer")
