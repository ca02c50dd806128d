from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.core.errors import InvalidArgument

CENT = Decimal("0.01")
# money columns are 32-bit integers
MAX_CENTS = 2**31 - 1


def to_cents(value, field: str = "amount") -> int:
    """Parse a major-unit amount (e.g. "4000", 4000.5, Decimal("12.34")) into integer centavos.

    Floats go through repr() so 0.1 stays 0.1 rather than its binary expansion.
    More than two decimal places is rejected instead of silently rounded.
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{field} must be a number")
    if not d.is_finite():
        raise InvalidArgument(f"{field} must be a finite number")
    try:
        exact = d == d.quantize(CENT)
    except InvalidOperation:
        raise InvalidArgument(f"{field} is out of range")
    if not exact:
        raise InvalidArgument(f"{field} has more than two decimal places")
    cents = int((d * 100).to_integral_value(rounding=ROUND_HALF_UP))
    if abs(cents) > MAX_CENTS:
        raise InvalidArgument(f"{field} is out of range")
    return cents


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def ensure_in_range(cents: int | None, field: str) -> int | None:
    """Derived sums (totals, balances) must still fit the money columns."""
    if cents is not None and abs(cents) > MAX_CENTS:
        raise InvalidArgument(f"{field} would be out of range", limit=str(from_cents(MAX_CENTS)))
    return cents
