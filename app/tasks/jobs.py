from app.tasks.celery_app import celery
from app.tasks import worker_jobs

@celery.task(name="app.tasks.jobs.expire_extensions")
def expire_extensions():
    return worker_jobs.expire_extensions()

@celery.task(name="app.tasks.jobs.reconcile_ledgers")
def reconcile_ledgers():
    return worker_jobs.reconcile_ledgers()

@celery.task(name="app.tasks.jobs.recalculate_booking")
def recalculate_booking(booking_id: int):
    return worker_jobs.recalculate_booking(booking_id)
