"""Matching engine: candidate listing and manual confirm/unmatch.

Candidates are every (unmatched receipt, unmatched charge) pair at or above
the noise floor.  Matching is cross-statement by default; passing a
``statement_id`` narrows the charges to that statement.

``confirm_match`` and ``unmatch`` own the bidirectional link between
``Receipt.matched_charge_id`` and ``Charge.receipt_id``: both sides change in
one storage transaction or neither does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from app.config import Settings, get_settings
from app.exceptions import AlreadyMatchedError, NotFoundError, ValidationError
from app.services.scoring_service import score
from app.services.similarity import MerchantNormalizer, day_difference

if TYPE_CHECKING:
    from app.models.receipt import Receipt
    from app.models.statement import Charge
    from app.services.storage import MatchStorage

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    receipt: "Receipt"
    charge: "Charge"
    confidence: int
    reasons: list[str] = field(default_factory=list)
    date_diff: Optional[int] = None


def _safe_day_difference(receipt: "Receipt", charge: "Charge") -> Optional[int]:
    try:
        return day_difference(receipt.date, charge.date)
    except ValidationError:
        return None


def _sort_key(candidate: Candidate):
    date_diff = candidate.date_diff if candidate.date_diff is not None else float("inf")
    return (-candidate.confidence, date_diff, candidate.receipt.id, candidate.charge.id)


class MatchingEngine:
    def __init__(
        self,
        storage: "MatchStorage",
        settings: Optional[Settings] = None,
        normalizer: Optional[MerchantNormalizer] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.normalizer = normalizer

    def _pair_candidates(self, receipts, charges) -> list[Candidate]:
        floor = self.settings.MATCH_NOISE_FLOOR
        candidates = []
        for receipt in receipts:
            for charge in charges:
                result = score(receipt, charge, self.settings, self.normalizer)
                if result.confidence < floor:
                    continue
                candidates.append(
                    Candidate(
                        receipt=receipt,
                        charge=charge,
                        confidence=result.confidence,
                        reasons=result.reasons,
                        date_diff=_safe_day_difference(receipt, charge),
                    )
                )
        candidates.sort(key=_sort_key)
        return candidates

    def get_candidates(self, statement_id: Optional[int] = None) -> list[Candidate]:
        """Return all candidate pairs, best first.

        Ties on confidence are broken by the smaller date difference, then by
        receipt id and charge id, so the ordering is reproducible.
        """
        receipts = self.storage.get_unmatched_receipts()
        charges = self.storage.get_unmatched_charges(statement_id)
        candidates = self._pair_candidates(receipts, charges)
        logger.info(
            "Matching candidates: %d receipts x %d charges (statement=%s) -> %d pairs",
            len(receipts),
            len(charges),
            statement_id if statement_id is not None else "all",
            len(candidates),
        )
        return candidates

    def get_candidates_for_receipt(self, receipt_id: int) -> list[Candidate]:
        """Rank all unmatched charges, across statements, for a single receipt."""
        receipt = self.storage.get_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError("receipt", receipt_id)
        if receipt.is_matched:
            return []
        return self._pair_candidates([receipt], self.storage.get_unmatched_charges())

    def confirm_match(self, receipt_id: int, charge_id: int) -> tuple["Receipt", "Charge"]:
        """Link a receipt and a charge on both sides.

        Raises ``NotFoundError`` if either record is missing and
        ``AlreadyMatchedError`` if either is linked to something else.
        Re-confirming an existing link is a no-op.
        """
        receipt = self.storage.get_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError("receipt", receipt_id)
        charge = self.storage.get_charge(charge_id)
        if charge is None:
            raise NotFoundError("charge", charge_id)

        if (
            receipt.is_matched
            and receipt.matched_charge_id == charge_id
            and charge.is_matched
            and charge.receipt_id == receipt_id
        ):
            return receipt, charge
        if receipt.is_matched:
            raise AlreadyMatchedError("receipt", receipt_id, receipt.matched_charge_id)
        if charge.is_matched:
            raise AlreadyMatchedError("charge", charge_id, charge.receipt_id)

        try:
            if not self.storage.update_charge(
                charge_id, {"is_matched": True, "receipt_id": receipt_id}, only_if_unmatched=True
            ):
                raise AlreadyMatchedError("charge", charge_id)
            if not self.storage.update_receipt(
                receipt_id, {"is_matched": True, "matched_charge_id": charge_id}, only_if_unmatched=True
            ):
                raise AlreadyMatchedError("receipt", receipt_id)
            self.storage.commit()
        except Exception:
            self.storage.rollback()
            raise

        logger.info("Matched receipt %s to charge %s", receipt_id, charge_id)
        return self.storage.get_receipt(receipt_id), self.storage.get_charge(charge_id)

    def unmatch(self, receipt_id: int) -> None:
        """Clear the link on both sides.  A receipt that is not matched is left alone."""
        receipt = self.storage.get_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError("receipt", receipt_id)
        if not receipt.is_matched and receipt.matched_charge_id is None:
            return

        charge_id = receipt.matched_charge_id
        try:
            if charge_id is not None:
                charge = self.storage.get_charge(charge_id)
                if charge is not None and charge.receipt_id == receipt_id:
                    self.storage.update_charge(charge_id, {"is_matched": False, "receipt_id": None})
            self.storage.update_receipt(receipt_id, {"is_matched": False, "matched_charge_id": None})
            self.storage.commit()
        except Exception:
            self.storage.rollback()
            raise
        logger.info("Unmatched receipt %s from charge %s", receipt_id, charge_id)
