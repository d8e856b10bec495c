import logging

from app.tasks.celery_app import celery_app
from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(name="app.tasks.analyze_patterns.run_pattern_analysis")
def run_pattern_analysis(window_days: int | None = None):
    """Mine recent skip records and log the resulting recommendations."""
    from app.database import SessionLocal
    from app.services.pattern_service import PatternAnalyzer
    from app.services.storage import SqlMatchStorage

    days = window_days or settings.PATTERN_WINDOW_DAYS
    with SessionLocal() as db:
        analyzer = PatternAnalyzer(SqlMatchStorage(db))
        insights = analyzer.analyze_patterns(days)
        recommendations = analyzer.generate_recommendations(insights)

    for recommendation in recommendations:
        logger.info("Matching recommendation: %s", recommendation)
    logger.info(
        "Pattern analysis task complete. %d insights, %d recommendations.",
        len(insights),
        len(recommendations),
    )
    return {
        "status": "ok",
        "insights": [insight.type for insight in insights],
        "recommendations": recommendations,
    }
