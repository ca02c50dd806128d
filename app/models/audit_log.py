import json
from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # uuid4
    actor: Mapped[str] = mapped_column(String(120), index=True)  # X-Actor value, "scheduler" or "system"
    action: Mapped[str] = mapped_column(String(80), index=True)  # payment.recorded, extension.approved, ledger.reconciled
    entity_type: Mapped[str] = mapped_column(String(40), index=True)
    entity_id: Mapped[str] = mapped_column(String(36), index=True)
    details_json: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def details(self) -> dict:
        return json.loads(self.details_json or "{}")
