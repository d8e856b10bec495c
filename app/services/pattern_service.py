"""Pattern analyzer: mine rejected matches for systemic mismatch causes.

Each sub-analysis is isolated: if one raises, it is logged and contributes
nothing, and the others still run.  Receipts and charges referenced by skip
records are loaded in one batch per analysis rather than one lookup per
record.

All thresholds come from ``Settings`` (``PATTERN_*``).  The tip band and the
minimum-support counts are empirical defaults, not invariants.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Optional

from app.config import Settings, get_settings

if TYPE_CHECKING:
    from app.models.skip_record import SkipRecord
    from app.services.storage import MatchStorage

logger = logging.getLogger(__name__)

MERCHANT_MISMATCH = "merchant_mismatch"
DATE_OFFSET = "date_offset"
AMOUNT_VARIANCE = "amount_variance"
CATEGORY_CONFUSION = "category_confusion"


@dataclass
class PatternInsight:
    type: str
    description: str
    frequency: int
    examples: list[dict[str, Any]] = field(default_factory=list)
    recommendation: str = ""


@dataclass
class MismatchPattern:
    receipt_merchant: str
    charge_merchant: str
    frequency: int
    avg_amount_diff: float
    avg_date_diff: float


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class PatternAnalyzer:
    def __init__(
        self,
        storage: "MatchStorage",
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.clock = clock

    def _since(self, days: int) -> datetime:
        return self.clock() - timedelta(days=days)

    def analyze_patterns(self, window_days: Optional[int] = None) -> list[PatternInsight]:
        """Run every sub-analysis over the last *window_days* of skip records."""
        if window_days is None:
            window_days = self.settings.PATTERN_WINDOW_DAYS
        since = self._since(window_days)
        insights: list[PatternInsight] = []
        for name, analysis in (
            (MERCHANT_MISMATCH, self._analyze_merchant_patterns),
            (DATE_OFFSET, self._analyze_date_patterns),
            (AMOUNT_VARIANCE, self._analyze_amount_patterns),
            (CATEGORY_CONFUSION, self._analyze_category_patterns),
        ):
            try:
                insights.extend(analysis(since))
            except Exception:
                logger.exception("Pattern analysis %s failed", name)
        logger.info("Pattern analysis complete: found %d insights", len(insights))
        return insights

    def _analyze_merchant_patterns(self, since: datetime) -> list[PatternInsight]:
        s = self.settings
        mismatches = self.storage.query_skip_records(
            since,
            max_merchant_similarity=s.PATTERN_MERCHANT_SIMILARITY_MAX,
            limit=s.PATTERN_QUERY_LIMIT,
        )
        if len(mismatches) <= s.PATTERN_MERCHANT_MIN_SUPPORT:
            return []

        sample = mismatches[: s.PATTERN_MAX_EXAMPLES]
        receipts = self.storage.get_receipts(r.receipt_id for r in sample)
        charges = self.storage.get_charges(r.charge_id for r in sample)
        examples = []
        for record in sample:
            receipt = receipts.get(record.receipt_id)
            charge = charges.get(record.charge_id)
            if receipt is None or charge is None:
                continue
            examples.append(
                {
                    "receipt_merchant": receipt.merchant,
                    "charge_merchant": charge.description,
                    "similarity": _to_float(record.merchant_similarity),
                }
            )
        return [
            PatternInsight(
                type=MERCHANT_MISMATCH,
                description="Frequent merchant name mismatches detected",
                frequency=len(mismatches),
                examples=examples,
                recommendation="Consider adding merchant aliases for these common variations",
            )
        ]

    def _analyze_date_patterns(self, since: datetime) -> list[PatternInsight]:
        s = self.settings
        offsets = self.storage.query_skip_records(since, min_date_diff=s.PATTERN_DATE_OFFSET_MIN_DAYS)
        if not offsets:
            return []
        groups = Counter(int(r.date_diff) for r in offsets)
        total = sum(groups.values())
        if total <= s.PATTERN_DATE_MIN_SUPPORT:
            return []

        avg_offset = sum(days * count for days, count in groups.items()) / total
        ranked = sorted(groups.items(), key=lambda item: (-item[1], item[0]))
        return [
            PatternInsight(
                type=DATE_OFFSET,
                description="Receipts frequently have dates offset from charges",
                frequency=total,
                examples=[
                    {"days_difference": days, "occurrences": count}
                    for days, count in ranked[: s.PATTERN_MAX_EXAMPLES]
                ],
                recommendation=(
                    "Consider expanding date matching tolerance. "
                    f"Average offset: {round(avg_offset)} days"
                ),
            )
        ]

    def _analyze_amount_patterns(self, since: datetime) -> list[PatternInsight]:
        s = self.settings
        variances = self.storage.query_skip_records(since, min_amount_diff=s.PATTERN_AMOUNT_MIN_DIFF)
        groups = Counter(Decimal(str(r.amount_diff)) for r in variances)
        top_groups = sorted(groups.items(), key=lambda item: (-item[1], item[0]))[
            : s.PATTERN_AMOUNT_GROUP_LIMIT
        ]
        total = sum(count for _, count in top_groups)
        if total <= s.PATTERN_AMOUNT_MIN_SUPPORT:
            return []

        tip_groups = [
            (diff, count)
            for diff, count in top_groups
            if s.PATTERN_TIP_BAND_MIN <= diff <= s.PATTERN_TIP_BAND_MAX
        ]
        if not tip_groups:
            return []
        return [
            PatternInsight(
                type=AMOUNT_VARIANCE,
                description="Frequent amount differences possibly due to tips or taxes",
                frequency=total,
                examples=[
                    {"amount_difference": f"${diff:.2f}", "occurrences": count}
                    for diff, count in tip_groups[: s.PATTERN_MAX_EXAMPLES]
                ],
                recommendation="Consider implementing tip/tax detection logic for better matching",
            )
        ]

    def _analyze_category_patterns(self, since: datetime) -> list[PatternInsight]:
        s = self.settings
        records = self.storage.query_skip_records(since, limit=s.PATTERN_QUERY_LIMIT)
        if not records:
            return []
        receipts = self.storage.get_receipts(r.receipt_id for r in records)
        charges = self.storage.get_charges(r.charge_id for r in records)

        confusion: Counter = Counter()
        for record in records:
            receipt = receipts.get(record.receipt_id)
            charge = charges.get(record.charge_id)
            receipt_category = receipt.category if receipt is not None else None
            charge_category = charge.category if charge is not None else None
            if receipt_category and charge_category and receipt_category != charge_category:
                confusion[(receipt_category, charge_category)] += 1

        confusions = sorted(
            (
                {"from": src, "to": dst, "count": count}
                for (src, dst), count in confusion.items()
                if count > s.PATTERN_CATEGORY_MIN_SUPPORT
            ),
            key=lambda c: (-c["count"], c["from"], c["to"]),
        )
        if not confusions:
            return []
        return [
            PatternInsight(
                type=CATEGORY_CONFUSION,
                description="Categories frequently mismatched between receipts and charges",
                frequency=sum(c["count"] for c in confusions),
                examples=confusions[: s.PATTERN_MAX_EXAMPLES],
                recommendation="Review category assignment logic or consider category mapping rules",
            )
        ]

    def get_problematic_merchants(self, limit: int = 10) -> list[MismatchPattern]:
        """Merchant/description pairs that keep getting rejected, most frequent first."""
        s = self.settings
        try:
            skips = self.storage.query_skip_records(
                self._since(s.PATTERN_LOOKBACK_DAYS), limit=s.PATTERN_PROBLEMATIC_QUERY_LIMIT
            )
            receipts = self.storage.get_receipts(r.receipt_id for r in skips)
            charges = self.storage.get_charges(r.charge_id for r in skips)

            pairs: dict[tuple[str, str], list[SkipRecord]] = defaultdict(list)
            for skip in skips:
                receipt = receipts.get(skip.receipt_id)
                charge = charges.get(skip.charge_id)
                if receipt is None or charge is None:
                    continue
                if receipt.merchant and charge.description:
                    pairs[(receipt.merchant, charge.description)].append(skip)

            patterns = [
                MismatchPattern(
                    receipt_merchant=merchant,
                    charge_merchant=description,
                    frequency=len(group),
                    avg_amount_diff=sum(_to_float(g.amount_diff) for g in group) / len(group),
                    avg_date_diff=sum(_to_float(g.date_diff) for g in group) / len(group),
                )
                for (merchant, description), group in pairs.items()
                if len(group) >= s.PATTERN_PROBLEMATIC_MIN_OCCURRENCES
            ]
            patterns.sort(key=lambda p: (-p.frequency, p.receipt_merchant, p.charge_merchant))
        except Exception:
            logger.exception("Error getting problematic merchants")
            return []
        return patterns[:limit]

    def generate_recommendations(
        self, insights: Optional[list[PatternInsight]] = None
    ) -> list[str]:
        """Insight recommendations followed by concrete alias-mapping suggestions.

        Pass *insights* from an earlier ``analyze_patterns`` call to avoid
        running the analysis twice.
        """
        s = self.settings
        if insights is None:
            insights = self.analyze_patterns()
        recommendations = [insight.recommendation for insight in insights]
        for merchant in self.get_problematic_merchants(s.PATTERN_ALIAS_SUGGESTION_LIMIT):
            if merchant.frequency > s.PATTERN_ALIAS_SUGGESTION_MIN_FREQUENCY:
                recommendations.append(
                    f'Add alias mapping: "{merchant.receipt_merchant}" → '
                    f'"{merchant.charge_merchant}" ({merchant.frequency} failed matches)'
                )
        return recommendations
