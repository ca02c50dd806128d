import json
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog


def log_audit(db: Session, actor: str, action: str, entity_type: str, entity_id, details: dict | None = None) -> AuditLog:
    """Stage one audit row in the caller's transaction; it commits or rolls back with the ledger write."""
    entry = AuditLog(
        id=str(uuid.uuid4()),
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        # Decimals and datetimes end up as their str() form
        details_json=json.dumps(details or {}, ensure_ascii=False, sort_keys=True, default=str),
    )
    db.add(entry)
    return entry


def audit_trail(db: Session, entity_type: str, entity_id, action: str | None = None) -> list[AuditLog]:
    q = select(AuditLog).where(AuditLog.entity_type == entity_type, AuditLog.entity_id == str(entity_id))
    if action:
        q = q.where(AuditLog.action == action)
    return list(db.execute(q.order_by(AuditLog.created_at.asc())).scalars())
