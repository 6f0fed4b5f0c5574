"""
Background tasks.
"""

# Ensure Celery registers task modules on worker startup.
from hookwarden.tasks import notification_tasks  # noqa: F401
