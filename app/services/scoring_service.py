"""Candidate scorer: how likely a receipt and a charge are the same transaction.

Scoring strategy (each component contributes points to a 0–100 confidence):
- Amount:   exact (< $0.01)  → 50, within $1 → 35, within $10 → 20
- Date:     same day         → 30, within 1 d → 20, within 3 d → 10
- Merchant: abbreviation     → 20, fuzzy similarity ≥ 50 % → similarity × 20

Weights and tolerances come from ``Settings``.  A pair must reach the noise
floor (50) to be a candidate at all.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from app.config import Settings, get_settings
from app.exceptions import ValidationError
from app.services.similarity import (
    MerchantNormalizer,
    amount_difference,
    clean_tokens,
    day_difference,
    merchant_abbreviation_match,
    merchant_similarity,
)

if TYPE_CHECKING:
    from app.models.receipt import Receipt
    from app.models.statement import Charge

logger = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    confidence: int
    reasons: list[str] = field(default_factory=list)


def _amount_score(receipt_amount, charge_amount, settings: Settings) -> tuple[int, Optional[str]]:
    try:
        diff = amount_difference(receipt_amount, charge_amount)
    except ValidationError as exc:
        logger.debug("Skipping amount term: %s", exc)
        return 0, None
    if diff is None:
        return 0, None
    if diff < settings.MATCH_AMOUNT_EXACT_TOLERANCE:
        return settings.MATCH_WEIGHT_AMOUNT_EXACT, "Exact amount match"
    if diff < settings.MATCH_AMOUNT_CLOSE_TOLERANCE:
        return settings.MATCH_WEIGHT_AMOUNT_CLOSE, f"Close amount match (${diff:.2f} difference)"
    if diff <= settings.MATCH_AMOUNT_TOLERANCE:
        return settings.MATCH_WEIGHT_AMOUNT_SIMILAR, f"Similar amount (${diff:.2f} difference)"
    return 0, None


def _date_score(receipt_date, charge_date, settings: Settings) -> tuple[int, Optional[str]]:
    try:
        delta = day_difference(receipt_date, charge_date)
    except ValidationError as exc:
        logger.debug("Skipping date term: %s", exc)
        return 0, None
    if delta is None:
        return 0, None
    if delta == 0:
        return settings.MATCH_WEIGHT_DATE_SAME, "Same date"
    if delta <= 1:
        return settings.MATCH_WEIGHT_DATE_NEAR, "Within 1 day"
    if delta <= settings.MATCH_DATE_TOLERANCE_DAYS:
        return settings.MATCH_WEIGHT_DATE_WINDOW, f"Within {settings.MATCH_DATE_TOLERANCE_DAYS} days"
    return 0, None


def _merchant_score(
    merchant: Optional[str],
    description: Optional[str],
    settings: Settings,
    normalizer: Optional[MerchantNormalizer] = None,
) -> tuple[int, Optional[str]]:
    if not merchant or not description:
        return 0, None
    identical = clean_tokens(merchant, normalizer) == clean_tokens(description, normalizer)
    if not identical and merchant_abbreviation_match(merchant, description, normalizer):
        return settings.MATCH_WEIGHT_MERCHANT_ABBREVIATION, "Merchant abbreviation match"
    similarity = merchant_similarity(merchant, description, normalizer)
    if similarity >= settings.MATCH_MERCHANT_MIN_SIMILARITY:
        points = round(similarity * settings.MATCH_WEIGHT_MERCHANT_FUZZY)
        return points, f"Merchant name similarity: {round(similarity * 100)}%"
    return 0, None


def score(
    receipt: "Receipt",
    charge: "Charge",
    settings: Optional[Settings] = None,
    normalizer: Optional[MerchantNormalizer] = None,
) -> ScoreResult:
    """Return the confidence (0–100) and reasons for a (receipt, charge) pair.

    Missing fields on either side simply contribute nothing.
    """
    settings = settings or get_settings()
    confidence = 0
    reasons: list[str] = []
    for points, reason in (
        _amount_score(receipt.amount, charge.amount, settings),
        _date_score(receipt.date, charge.date, settings),
        _merchant_score(receipt.merchant, charge.description, settings, normalizer),
    ):
        confidence += points
        if reason:
            reasons.append(reason)
    return ScoreResult(confidence=min(confidence, 100), reasons=reasons)


def populated_field_count(receipt: "Receipt") -> int:
    """How many of merchant, amount and date the receipt carries."""
    return sum(
        1
        for value in (receipt.merchant, receipt.amount, receipt.date)
        if value is not None and value != ""
    )
