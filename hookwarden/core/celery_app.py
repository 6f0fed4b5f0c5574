"""
Celery application configuration for async tasks.
"""
from celery import Celery

from hookwarden.core.config import settings

celery_app = Celery(
    "hookwarden",
    include=[
        "hookwarden.tasks.notification_tasks",
    ],
)

celery_app.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    accept_content=settings.celery_accept_content,
    timezone=settings.celery_timezone,
    enable_utc=settings.celery_enable_utc,
    task_ignore_result=True,  # deliveries are fire-and-forget
    task_time_limit=60,
    task_soft_time_limit=50,
    worker_prefetch_multiplier=4,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)
