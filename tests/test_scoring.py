"""Tests for the candidate scorer.

Covers:
- Amount, date and merchant terms
- Combined confidence, cap and determinism
- Receipts with missing or malformed fields
"""
from datetime import date
from decimal import Decimal

import pytest

from tests.fakes import make_charge, make_receipt


class TestAmountScore:
    def test_exact_match(self, settings):
        from app.services.scoring_service import _amount_score

        assert _amount_score(Decimal("42.50"), "-42.50", settings) == (50, "Exact amount match")

    def test_close_match(self, settings):
        from app.services.scoring_service import _amount_score

        points, reason = _amount_score(Decimal("42.00"), "-42.50", settings)
        assert points == 35
        assert reason == "Close amount match ($0.50 difference)"

    def test_within_tip_band(self, settings):
        from app.services.scoring_service import _amount_score

        points, reason = _amount_score(Decimal("20.00"), "-24.00", settings)
        assert points == 20
        assert reason == "Similar amount ($4.00 difference)"

    def test_band_edge_is_inclusive(self, settings):
        from app.services.scoring_service import _amount_score

        assert _amount_score(Decimal("20.00"), "-30.00", settings)[0] == 20
        assert _amount_score(Decimal("20.00"), "-30.01", settings) == (0, None)

    def test_receipt_amount_none(self, settings):
        from app.services.scoring_service import _amount_score

        assert _amount_score(None, "-42.50", settings) == (0, None)

    def test_malformed_charge_amount_is_skipped(self, settings):
        from app.services.scoring_service import _amount_score

        assert _amount_score(Decimal("42.50"), "N/A", settings) == (0, None)


class TestDateScore:
    def test_same_day(self, settings):
        from app.services.scoring_service import _date_score

        assert _date_score(date(2023, 4, 15), date(2023, 4, 15), settings) == (30, "Same date")

    def test_within_one_day(self, settings):
        from app.services.scoring_service import _date_score

        assert _date_score(date(2023, 4, 15), date(2023, 4, 16), settings) == (20, "Within 1 day")

    def test_within_window(self, settings):
        from app.services.scoring_service import _date_score

        assert _date_score(date(2023, 4, 15), date(2023, 4, 18), settings) == (10, "Within 3 days")

    def test_outside_window(self, settings):
        from app.services.scoring_service import _date_score

        assert _date_score(date(2023, 4, 15), date(2023, 4, 19), settings) == (0, None)

    def test_none_date(self, settings):
        from app.services.scoring_service import _date_score

        assert _date_score(None, date(2023, 4, 15), settings) == (0, None)


class TestMerchantScore:
    def test_abbreviation(self, settings):
        from app.services.scoring_service import _merchant_score

        assert _merchant_score("Amazon Marketplace", "AMZN MKTP US*1234567890", settings) == (
            20,
            "Merchant abbreviation match",
        )

    def test_identical_names_report_full_similarity(self, settings):
        from app.services.scoring_service import _merchant_score

        assert _merchant_score("The Home Depot", "HOME DEPOT #4521", settings) == (
            20,
            "Merchant name similarity: 100%",
        )

    def test_fuzzy_similarity_reason_has_percentage(self, settings):
        from app.services.scoring_service import _merchant_score

        points, reason = _merchant_score("Trader Joes", "JOES TRADER MARKET", settings)
        assert 10 <= points <= 20
        assert reason.startswith("Merchant name similarity: ")
        assert reason.endswith("%")

    def test_no_relation(self, settings):
        from app.services.scoring_service import _merchant_score

        assert _merchant_score("Local Coffee Shop", "AMAZON.COM", settings) == (0, None)

    def test_none_merchant(self, settings):
        from app.services.scoring_service import _merchant_score

        assert _merchant_score(None, "AMAZON", settings) == (0, None)


class TestScore:
    def test_amazon_abbreviation_scenario(self, settings):
        from app.services.scoring_service import score

        result = score(make_receipt(), make_charge(), settings)
        assert result.confidence > 90
        assert "Exact amount match" in result.reasons
        assert "Same date" in result.reasons
        assert "Merchant abbreviation match" in result.reasons

    def test_exact_amount_and_date_reach_combined_weight(self, settings):
        from app.services.scoring_service import score

        receipt = make_receipt(merchant="Zebra Supplies", amount="10.00")
        charge = make_charge(description="QQQ HOLDINGS", amount="-10.00")
        result = score(receipt, charge, settings)
        assert result.confidence >= settings.MATCH_WEIGHT_AMOUNT_EXACT + settings.MATCH_WEIGHT_DATE_SAME
        assert result.reasons[:2] == ["Exact amount match", "Same date"]

    def test_unrelated_pair_is_below_noise_floor(self, settings):
        from app.services.scoring_service import score

        receipt = make_receipt(merchant="Local Coffee Shop", amount="4.50", date=date(2024, 1, 15))
        charge = make_charge(description="AMAZON.COM", amount="-25.99", date=date(2024, 1, 20))
        result = score(receipt, charge, settings)
        assert result.confidence < settings.MATCH_NOISE_FLOOR
        assert result.reasons == []

    def test_confidence_is_capped(self, settings):
        from app.services.scoring_service import score

        settings.MATCH_WEIGHT_AMOUNT_EXACT = 90
        result = score(make_receipt(), make_charge(), settings)
        assert result.confidence == 100

    def test_deterministic(self, settings):
        from app.services.scoring_service import score

        receipt = make_receipt(merchant="Trader Joes", amount="31.00")
        charge = make_charge(description="JOES TRADER MARKET", amount="-33.50", date=date(2024, 1, 17))
        assert score(receipt, charge, settings) == score(receipt, charge, settings)

    def test_single_field_receipt_limited_to_one_term(self, settings):
        from app.services.scoring_service import score

        receipt = make_receipt(merchant=None, amount="25.99", date=None)
        result = score(receipt, make_charge(), settings)
        assert result.confidence == settings.MATCH_WEIGHT_AMOUNT_EXACT
        assert result.reasons == ["Exact amount match"]

    def test_uses_default_settings(self):
        from app.services.scoring_service import score

        assert score(make_receipt(), make_charge()).confidence == 100


class TestPopulatedFieldCount:
    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({}, 3),
            ({"date": None}, 2),
            ({"amount": None, "date": None}, 1),
            ({"merchant": "", "amount": None, "date": None}, 0),
        ],
    )
    def test_counts(self, kwargs, expected):
        from app.services.scoring_service import populated_field_count

        assert populated_field_count(make_receipt(**kwargs)) == expected
