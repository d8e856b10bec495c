"""Record explicit human rejections of suggested pairs.

Rejection analytics are best-effort: a failure here is logged and never
reaches the caller, so the review flow is never blocked by it.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from app.exceptions import ValidationError
from app.models.skip_record import SkipRecord
from app.services.similarity import (
    MerchantNormalizer,
    amount_difference,
    day_difference,
    merchant_similarity,
)

if TYPE_CHECKING:
    from app.services.storage import MatchStorage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _amount_delta(receipt, charge) -> Decimal:
    try:
        diff = amount_difference(receipt.amount, charge.amount)
    except ValidationError as exc:
        logger.debug("Amount delta recorded as 0: %s", exc)
        return Decimal("0")
    return diff if diff is not None else Decimal("0")


def _date_delta(receipt, charge) -> int:
    try:
        diff = day_difference(receipt.date, charge.date)
    except ValidationError as exc:
        logger.debug("Date delta recorded as 0: %s", exc)
        return 0
    return diff if diff is not None else 0


def _similarity_text(receipt, charge, normalizer: Optional[MerchantNormalizer]) -> Optional[str]:
    # Null when either name is missing
    if not receipt.merchant or not charge.description:
        return None
    return f"{merchant_similarity(receipt.merchant, charge.description, normalizer):.4f}"


def record_skip(
    storage: "MatchStorage",
    receipt_id: int,
    charge_id: int,
    reason: Optional[str] = None,
    normalizer: Optional[MerchantNormalizer] = None,
) -> Optional[SkipRecord]:
    """Persist the feature deltas of a rejected (receipt, charge) suggestion.

    Malformed amounts or dates are recorded as a zero delta so the rejection
    itself is never lost.
    """
    try:
        receipt = storage.get_receipt(receipt_id)
        charge = storage.get_charge(charge_id)
        if receipt is None or charge is None:
            logger.warning(
                "Skip not recorded: receipt %s or charge %s not found", receipt_id, charge_id
            )
            return None

        record = SkipRecord(
            receipt_id=receipt_id,
            charge_id=charge_id,
            merchant_similarity=_similarity_text(receipt, charge, normalizer),
            amount_diff=_amount_delta(receipt, charge),
            date_diff=_date_delta(receipt, charge),
            skip_reason=reason,
            skipped_at=_utcnow(),
        )
        storage.insert_skip_record(record)
    except Exception:
        logger.exception("Failed to record skip for receipt %s / charge %s", receipt_id, charge_id)
        return None

    logger.info(
        "Recorded skip: receipt %s / charge %s (similarity=%s, amount_diff=%s, date_diff=%s)",
        receipt_id,
        charge_id,
        record.merchant_similarity,
        record.amount_diff,
        record.date_diff,
    )
    return record
