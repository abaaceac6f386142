"""
PEACE - Workers Module
Celery タスク定義
"""
from app.workers.celery_app import celery_app
from app.workers.tasks import (
    import_quotes_task,
    reconcile_presence_task,
)

__all__ = [
    "celery_app",
    "import_quotes_task",
    "reconcile_presence_task",
]
