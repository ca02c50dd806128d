import threading
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.core.logging import get_logger
from app.models.booking import Booking

logger = get_logger(__name__)


class _BookingLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


_registry_lock = threading.Lock()
# only bookings with a writer running or waiting have an entry
_booking_locks: dict[int, _BookingLock] = {}


@contextmanager
def _hold(booking_id: int):
    with _registry_lock:
        entry = _booking_locks.get(booking_id)
        if entry is None:
            entry = _booking_locks[booking_id] = _BookingLock()
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del _booking_locks[booking_id]


@contextmanager
def booking_transaction(db: Session, booking_id: int):
    """Serialize balance-affecting work on one booking and make it a single unit of work.

    Holds a per-booking lock for this process plus a row lock (SELECT ... FOR UPDATE)
    for other processes. Commits when the block exits cleanly, rolls back otherwise.
    The lock is released only after commit/rollback so the next writer sees committed rows.
    """
    with _hold(booking_id):
        try:
            booking = db.execute(
                select(Booking)
                .where(Booking.id == booking_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if not booking:
                raise NotFound(f"booking {booking_id} not found")
            logger.debug("booking %s locked", booking_id)
            yield booking
            db.commit()
        except Exception:
            db.rollback()
            raise
