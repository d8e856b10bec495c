"""Auto-match policy: link a receipt without human confirmation.

A receipt carrying only one of merchant/amount/date is weaker evidence, so
it needs a higher confidence than one carrying two or three.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.config import Settings
from app.exceptions import MatchingError
from app.services.matching_service import MatchingEngine
from app.services.scoring_service import populated_field_count

logger = logging.getLogger(__name__)


@dataclass
class AutoMatchResult:
    matched: bool
    confidence: Optional[int] = None
    charge_id: Optional[int] = None
    reason: Optional[str] = None


def required_confidence(field_count: int, settings: Settings) -> Optional[int]:
    """Threshold for a receipt with *field_count* populated fields (None: never)."""
    if field_count <= 0:
        return None
    if field_count == 1:
        return settings.AUTO_MATCH_THRESHOLD_SINGLE_FIELD
    return settings.AUTO_MATCH_THRESHOLD


def attempt_auto_match(engine: MatchingEngine, receipt_id: int) -> AutoMatchResult:
    """Confirm the top-ranked candidate if it clears the receipt's threshold.

    Never raises for matching failures; the receipt just stays unmatched.
    """
    try:
        receipt = engine.storage.get_receipt(receipt_id)
        if receipt is None:
            logger.info("Auto-match skipped: receipt %s not found", receipt_id)
            return AutoMatchResult(matched=False)
        if receipt.is_matched:
            return AutoMatchResult(matched=False, charge_id=receipt.matched_charge_id)

        threshold = required_confidence(populated_field_count(receipt), engine.settings)
        if threshold is None:
            return AutoMatchResult(matched=False)

        candidates = engine.get_candidates_for_receipt(receipt_id)
        if not candidates:
            return AutoMatchResult(matched=False)

        best = candidates[0]
        reason = ", ".join(best.reasons)
        if best.confidence < threshold:
            logger.info(
                "Auto-match declined for receipt %s: best confidence %d < %d",
                receipt_id,
                best.confidence,
                threshold,
            )
            return AutoMatchResult(matched=False, confidence=best.confidence, reason=reason)

        engine.confirm_match(receipt_id, best.charge.id)
    except MatchingError as exc:
        logger.warning("Auto-match failed for receipt %s: %s", receipt_id, exc)
        return AutoMatchResult(matched=False)

    logger.info(
        "Auto-matched receipt %s with charge %s at %d%% confidence",
        receipt_id,
        best.charge.id,
        best.confidence,
    )
    return AutoMatchResult(
        matched=True, confidence=best.confidence, charge_id=best.charge.id, reason=reason
    )
