from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready

from app.core.config import settings


def broker_url(url: str) -> str:
    """rediss:// brokers (managed Redis over TLS) need ssl_cert_reqs in the query string."""
    parsed = urlparse(url or "")
    if parsed.scheme.lower() != "rediss":
        return url
    query = parse_qs(parsed.query)
    query.setdefault("ssl_cert_reqs", ["CERT_NONE"])
    return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))


celery = Celery(
    "rentwise",
    broker=broker_url(settings.REDIS_URL),
    backend=broker_url(settings.REDIS_URL),
    include=["app.tasks.jobs"],
)

# rental desks run on Manila time
celery.conf.timezone = "Asia/Manila"
celery.conf.task_acks_late = True

celery.conf.beat_schedule = {
    "expire-overdue-extensions": {
        "task": "app.tasks.jobs.expire_extensions",
        "schedule": settings.EXTENSION_EXPIRY_INTERVAL_SECONDS,
    },
    "reconcile-ledgers": {
        "task": "app.tasks.jobs.reconcile_ledgers",
        "schedule": settings.RECONCILE_INTERVAL_SECONDS,
    },
}


@worker_ready.connect
def expire_on_startup(sender, **kwargs):
    # deadlines that passed while no worker was running
    from app.tasks.jobs import expire_extensions
    expire_extensions.delay()
