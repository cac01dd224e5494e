from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery(
    "docflow",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.billing", "app.tasks.email"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
    beat_schedule={
        "generate-invoices": {
            "task": "app.tasks.billing.generate_invoices",
            "schedule": crontab(minute=0, hour=1, day_of_month=1),
        },
        "generate-client-invoices": {
            "task": "app.tasks.billing.generate_all_client_invoices",
            "schedule": crontab(minute=30, hour=1, day_of_month=1),
        },
        "remind-unpaid-invoices": {
            "task": "app.tasks.billing.remind_unpaid_invoices",
            "schedule": crontab(minute=0, hour=9, day_of_week=1),
        },
    },
)
