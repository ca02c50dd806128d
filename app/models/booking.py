from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base
from app.models.extension import ExtensionStatus


class BookingStatus:
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    TERMINAL = (COMPLETED, CANCELLED)


class PaymentStatus:
    PENDING = "Pending"    # not priced yet
    UNPAID = "Unpaid"      # priced, balance outstanding (nothing or part paid)
    PAID = "Paid"
    REFUNDED = "Refunded"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), index=True)
    car_id: Mapped[int] = mapped_column(ForeignKey("cars.id"), index=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    pickup_loc: Mapped[str] = mapped_column(String(255), default="")
    dropoff_loc: Mapped[str] = mapped_column(String(255), default="")

    # Minor units. total is NULL until an admin prices the booking.
    total_amount_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    balance_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # charges assessed at vehicle return (fuel, lost equipment, damage, cleaning); already inside total
    return_fee_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    returned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING)  # Pending, Unpaid, Paid, Refunded
    booking_status: Mapped[str] = mapped_column(String(20), default=BookingStatus.PENDING, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    customer = relationship("Customer")
    car = relationship("Car")
    payments = relationship("Payment", back_populates="booking", order_by="[Payment.created_at, Payment.id]", cascade="all, delete-orphan")
    refunds = relationship("Refund", back_populates="booking", order_by="Refund.id", cascade="all, delete-orphan")
    extensions = relationship("Extension", back_populates="booking", order_by="Extension.id", cascade="all, delete-orphan")

    # Extension flags are read from the Extension rows; the booking never stores them.
    @property
    def active_extension(self):
        for ext in reversed(self.extensions):
            if ext.is_active:
                return ext
        return None

    @property
    def is_extend(self) -> bool:
        return self.active_extension is not None

    @property
    def is_pay(self) -> bool:
        ext = self.active_extension
        return bool(ext and ext.is_fee_paid)

    @property
    def new_end_date(self) -> datetime | None:
        ext = self.active_extension
        return ext.new_end_date if ext else None

    @property
    def is_extended(self) -> bool:
        return any(ext.status == ExtensionStatus.COMPLETED for ext in self.extensions)
