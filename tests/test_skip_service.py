"""Tests for recording rejected suggestions."""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from tests.fakes import InMemoryStorage, make_charge, make_receipt


class TestRecordSkip:
    def test_records_feature_deltas(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, merchant="Olive Garden", amount="42.00", date=date(2024, 3, 1))],
            charges=[make_charge(id=2, description="SHELL OIL 5744", amount="-48.50", date=date(2024, 3, 4))],
        )
        record = record_skip(storage, 1, 2, "Different merchant")

        assert storage.skip_records == [record]
        assert record.receipt_id == 1 and record.charge_id == 2
        assert record.amount_diff == Decimal("6.50")
        assert record.date_diff == 3
        assert record.skip_reason == "Different merchant"
        assert 0.0 <= float(record.merchant_similarity) < 0.5
        assert record.skipped_at is not None

    def test_similarity_stored_as_text(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(receipts=[make_receipt(id=1)], charges=[make_charge(id=2)])
        record = record_skip(storage, 1, 2, None)
        assert isinstance(record.merchant_similarity, str)
        assert len(record.merchant_similarity.split(".")[1]) == 4

    def test_missing_fields_default_to_zero(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, amount=None, date=None)],
            charges=[make_charge(id=2)],
        )
        record = record_skip(storage, 1, 2, None)
        assert record.amount_diff == Decimal("0")
        assert record.date_diff == 0

    def test_malformed_charge_amount_still_records(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, date=date(2024, 1, 15))],
            charges=[make_charge(id=2, amount="N/A", date=date(2024, 1, 17))],
        )
        record = record_skip(storage, 1, 2, "wrong")
        assert storage.skip_records == [record]
        assert record.amount_diff == Decimal("0")
        assert record.date_diff == 2

    def test_malformed_date_still_records(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, amount="20.00", date="15/01/2024")],
            charges=[make_charge(id=2, amount="-26.00")],
        )
        record = record_skip(storage, 1, 2, None)
        assert record.date_diff == 0
        assert record.amount_diff == Decimal("6.00")

    def test_receipt_without_merchant_has_no_similarity(self):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(
            receipts=[make_receipt(id=1, merchant=None)],
            charges=[make_charge(id=2)],
        )
        record = record_skip(storage, 1, 2, None)
        assert record.merchant_similarity is None
        assert storage.query_skip_records(record.skipped_at, max_merchant_similarity=0.5) == []

    def test_missing_record_is_not_fatal(self, caplog):
        from app.services.skip_service import record_skip

        storage = InMemoryStorage(receipts=[make_receipt(id=1)])
        assert record_skip(storage, 1, 99, "nope") is None
        assert storage.skip_records == []
        assert "Skip not recorded" in caplog.text

    def test_storage_failure_is_logged_and_swallowed(self, caplog):
        from app.exceptions import PersistenceError
        from app.services.skip_service import record_skip

        storage = MagicMock()
        storage.get_receipt.return_value = make_receipt(id=1)
        storage.get_charge.return_value = make_charge(id=2)
        storage.insert_skip_record.side_effect = PersistenceError("db down")

        assert record_skip(storage, 1, 2, "wrong") is None
        assert "Failed to record skip" in caplog.text
