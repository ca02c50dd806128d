# Import all models so Base.metadata and string relationships are complete.
from app.db.session import Base  # noqa: F401
from app.models.customer import Customer  # noqa: F401
from app.models.car import Car  # noqa: F401
from app.models.booking import Booking  # noqa: F401
from app.models.extension import Extension  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.refund import Refund  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.fee_schedule import FeeSchedule  # noqa: F401
