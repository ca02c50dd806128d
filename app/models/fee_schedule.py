from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class FeeSchedule(Base):
    """Admin-managed return charge rates. Fee types without a row use settings.RETURN_FEES."""
    __tablename__ = "fee_schedules"

    fee_type: Mapped[str] = mapped_column(String(40), primary_key=True)  # e.g. gas_level_fee
    amount_cents: Mapped[int] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
