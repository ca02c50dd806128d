from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_actor
from app.services import fee_service
from app.services.money import from_cents

router = APIRouter(tags=["fees"])


def _out(schedule: dict[str, int]) -> dict[str, Decimal]:
    return {k: from_cents(v) for k, v in schedule.items()}

@router.get("/fees", response_model=dict[str, Decimal])
def get_fees(db: Session = Depends(get_db)):
    return _out(fee_service.get_fee_schedule(db))

@router.put("/fees", response_model=dict[str, Decimal])
def update_fees(body: dict[str, Decimal | str], db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    """Partial updates are fine; fee types left out keep their current rate."""
    return _out(fee_service.update_fee_schedule(db, body, actor=actor))
