"""Return charges: the admin-managed rate card and the fee owed for one vehicle return."""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidArgument
from app.core.logging import get_logger
from app.models.fee_schedule import FeeSchedule
from app.services.audit_service import log_audit
from app.services.money import from_cents, to_cents

logger = get_logger(__name__)

RETURN_FEE_TYPES = ("gas_level_fee", "equipment_loss_fee", "damage_fee", "cleaning_fee", "stain_removal_fee")
GAS_LEVELS = {"high": 3, "mid": 2, "low": 1}
# multiples of damage_fee
DAMAGE_LEVELS = {"none": 0, "minor": 1, "major": 3}


@dataclass(frozen=True)
class ReturnInspection:
    gas_level_at_release: str
    gas_level: str
    released_equipment: tuple[str, ...] = ()
    returned_equipment: tuple[str, ...] = ()
    damage: str = "none"
    is_clean: bool = True
    has_stain: bool = False


def get_fee_schedule(db: Session) -> dict[str, int]:
    """Rates in centavos keyed by fee type; stored rows win over the configured defaults."""
    schedule = {t: to_cents(settings.RETURN_FEES.get(t, 0), t) for t in RETURN_FEE_TYPES}
    for row in db.query(FeeSchedule).filter(FeeSchedule.fee_type.in_(RETURN_FEE_TYPES)).all():
        schedule[row.fee_type] = row.amount_cents
    return schedule


def update_fee_schedule(db: Session, fees: dict, actor: str = "system") -> dict[str, int]:
    unknown = sorted(set(fees) - set(RETURN_FEE_TYPES))
    if unknown:
        raise InvalidArgument(f"unknown fee type(s): {', '.join(unknown)}", allowed=list(RETURN_FEE_TYPES))
    parsed = {}
    for fee_type, amount in fees.items():
        cents = to_cents(amount, fee_type)
        if cents <= 0:
            raise InvalidArgument(f"{fee_type} must be greater than zero")
        parsed[fee_type] = cents

    for fee_type, cents in parsed.items():
        row = db.get(FeeSchedule, fee_type)
        if not row:
            db.add(FeeSchedule(fee_type=fee_type, amount_cents=cents))
        else:
            row.amount_cents = cents
    log_audit(db, actor, "fees.updated", "fee_schedule", "return", {k: str(from_cents(v)) for k, v in parsed.items()})
    db.commit()
    logger.info("return fee schedule updated: %s", sorted(parsed))
    return get_fee_schedule(db)


def _level(value: str, levels: dict[str, int], field: str) -> int:
    key = (value or "").strip().lower()
    if key not in levels:
        raise InvalidArgument(f"{field} must be one of {', '.join(levels)}")
    return levels[key]


def missing_equipment(released, returned) -> list[str]:
    back = {(item or "").strip().lower() for item in returned}
    return [item for item in released if (item or "").strip() and (item or "").strip().lower() not in back]


def calculate_return_fees(schedule: dict[str, int], inspection: ReturnInspection) -> int:
    """Fee owed for a return, in centavos. Pure."""
    fee = 0
    drop = _level(inspection.gas_level_at_release, GAS_LEVELS, "gas_level_at_release") - _level(inspection.gas_level, GAS_LEVELS, "gas_level")
    if drop > 0:
        fee += drop * schedule["gas_level_fee"]
    fee += len(missing_equipment(inspection.released_equipment, inspection.returned_equipment)) * schedule["equipment_loss_fee"]
    fee += _level(inspection.damage, DAMAGE_LEVELS, "damage") * schedule["damage_fee"]
    if not inspection.is_clean:
        fee += schedule["cleaning_fee"]
        if inspection.has_stain:
            fee += schedule["stain_removal_fee"]
    return fee
