"""
Celery application factory.
"""

from celery import Celery

celery_app = Celery("orchestrator")
celery_app.config_from_object("celeryconfig")

celery_app.autodiscover_tasks([
    "orchestrator.tasks.orchestration_tasks",
])
