"""Tests for the periodic pattern-analysis task."""
from unittest.mock import patch

from tests.fakes import make_charge, make_receipt, make_skip


class TestRunPatternAnalysis:
    def test_reports_insights_and_recommendations(self, db_session, caplog):
        import logging

        from app.tasks.analyze_patterns import run_pattern_analysis

        db_session.add_all(
            [
                make_receipt(id=1, merchant="Olive Garden"),
                make_charge(id=1, description="OG #1182 ORLANDO"),
            ]
            + [make_skip(merchant_similarity="0.1000") for _ in range(12)]
        )
        db_session.commit()

        caplog.set_level(logging.INFO, logger="app.tasks.analyze_patterns")
        with patch("app.database.SessionLocal", return_value=db_session):
            result = run_pattern_analysis(30)

        assert result["status"] == "ok"
        assert result["insights"] == ["merchant_mismatch"]
        assert result["recommendations"][-1] == (
            'Add alias mapping: "Olive Garden" → "OG #1182 ORLANDO" (12 failed matches)'
        )
        assert "Matching recommendation: Add alias mapping" in caplog.text

    def test_analysis_runs_once_with_requested_window(self, db_session):
        from app.services.pattern_service import PatternAnalyzer
        from app.tasks.analyze_patterns import run_pattern_analysis

        original = PatternAnalyzer.analyze_patterns
        with patch("app.database.SessionLocal", return_value=db_session), patch.object(
            PatternAnalyzer, "analyze_patterns", autospec=True, side_effect=original
        ) as analyze:
            run_pattern_analysis(7)

        assert analyze.call_count == 1
        assert analyze.call_args.args[1] == 7

    def test_quiet_history(self, db_session):
        from app.tasks.analyze_patterns import run_pattern_analysis

        with patch("app.database.SessionLocal", return_value=db_session):
            result = run_pattern_analysis()
        assert result == {"status": "ok", "insights": [], "recommendations": []}

    def test_scheduled_daily(self):
        from app.tasks.celery_app import celery_app

        schedule = celery_app.conf.beat_schedule["analyze-skip-patterns"]
        assert schedule["task"] == "app.tasks.analyze_patterns.run_pattern_analysis"
        assert schedule["schedule"] == 86400
