from celery import Celery
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "matching_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.tasks.analyze_patterns"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    beat_schedule={
        "analyze-skip-patterns": {
            "task": "app.tasks.analyze_patterns.run_pattern_analysis",
            "schedule": settings.PATTERN_ANALYSIS_INTERVAL_SECONDS,
        },
    },
)
