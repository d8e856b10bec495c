"""Tests for the auto-match policy."""
from unittest.mock import patch

from tests.fakes import InMemoryStorage, make_charge, make_receipt


def _engine(storage, settings):
    from app.services.matching_service import MatchingEngine

    return MatchingEngine(storage, settings)


def _candidate(receipt, charge, confidence):
    from app.services.matching_service import Candidate

    return Candidate(receipt=receipt, charge=charge, confidence=confidence, reasons=["Same date"])


class TestRequiredConfidence:
    def test_single_field_needs_higher_threshold(self, settings):
        from app.services.auto_match_service import required_confidence

        assert required_confidence(1, settings) == 95
        assert required_confidence(2, settings) == 90
        assert required_confidence(3, settings) == 90

    def test_empty_receipt_never_matches(self, settings):
        from app.services.auto_match_service import required_confidence

        assert required_confidence(0, settings) is None


class TestAttemptAutoMatch:
    def test_matches_strong_candidate(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        storage = InMemoryStorage(receipts=[make_receipt(id=1)], charges=[make_charge(id=7)])
        result = attempt_auto_match(_engine(storage, settings), 1)
        assert result.matched is True
        assert result.charge_id == 7
        assert result.confidence == 100
        assert storage.receipts[1].matched_charge_id == 7
        assert storage.charges[7].receipt_id == 1

    def test_single_field_receipt_below_threshold(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        receipt = make_receipt(id=1, merchant="Local Shop", amount=None, date=None)
        charge = make_charge(id=7)
        storage = InMemoryStorage(receipts=[receipt], charges=[charge])
        engine = _engine(storage, settings)
        with patch.object(engine, "get_candidates_for_receipt", return_value=[_candidate(receipt, charge, 85)]):
            result = attempt_auto_match(engine, 1)
        assert result.matched is False
        assert result.confidence == 85
        assert receipt.is_matched is False
        assert storage.commits == 0

    def test_full_receipt_clears_lower_threshold(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        receipt = make_receipt(id=1)
        charge = make_charge(id=7)
        storage = InMemoryStorage(receipts=[receipt], charges=[charge])
        engine = _engine(storage, settings)
        with patch.object(engine, "get_candidates_for_receipt", return_value=[_candidate(receipt, charge, 91)]):
            result = attempt_auto_match(engine, 1)
        assert result.matched is True
        assert result.confidence == 91
        assert result.charge_id == 7
        assert charge.is_matched is True

    def test_amount_only_receipt_is_not_auto_matched(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, merchant=None, date=None)],
            charges=[make_charge(id=7)],
        )
        result = attempt_auto_match(_engine(storage, settings), 1)
        assert result.matched is False
        assert result.confidence == 50

    def test_no_candidates(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        storage = InMemoryStorage(receipts=[make_receipt(id=1)])
        assert attempt_auto_match(_engine(storage, settings), 1).matched is False

    def test_missing_receipt_is_silent(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        assert attempt_auto_match(_engine(InMemoryStorage(), settings), 99).matched is False

    def test_never_overrides_existing_match(self, settings):
        from app.services.auto_match_service import attempt_auto_match

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, is_matched=True, matched_charge_id=3)],
            charges=[make_charge(id=7)],
        )
        result = attempt_auto_match(_engine(storage, settings), 1)
        assert result.matched is False
        assert storage.receipts[1].matched_charge_id == 3
        assert storage.charges[7].is_matched is False

    def test_lost_race_is_silent(self, settings, caplog):
        from app.exceptions import AlreadyMatchedError
        from app.services.auto_match_service import attempt_auto_match

        storage = InMemoryStorage(receipts=[make_receipt(id=1)], charges=[make_charge(id=7)])
        engine = _engine(storage, settings)
        with patch.object(engine, "confirm_match", side_effect=AlreadyMatchedError("charge", 7)):
            result = attempt_auto_match(engine, 1)
        assert result.matched is False
        assert "Auto-match failed" in caplog.text
