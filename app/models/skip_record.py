"""Append-only log of human rejections of suggested receipt/charge pairs."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class SkipRecord(Base):
    """One explicit rejection, with the feature deltas at the time it happened.

    ``merchant_similarity`` is a 0-1 float stored as text, null when there is
    no merchant name to compare.  ``amount_diff`` and ``date_diff`` are
    absolute differences (dollars and days).
    """

    __tablename__ = "skip_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_id: Mapped[int] = mapped_column(index=True)
    charge_id: Mapped[int] = mapped_column(index=True)
    merchant_similarity: Mapped[Optional[str]] = mapped_column(String(16))
    amount_diff: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    date_diff: Mapped[int]
    skip_reason: Mapped[Optional[str]] = mapped_column(Text)
    skipped_at: Mapped[datetime] = mapped_column(default=func.now(), index=True)
