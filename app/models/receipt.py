import enum
from datetime import datetime
from datetime import date as date_type
from decimal import Decimal
from typing import Optional
from sqlalchemy import Numeric, String, Text, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class ProcessingStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


class Receipt(Base):
    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    file_name: Mapped[Optional[str]] = mapped_column(String(500))
    processing_status: Mapped[ProcessingStatus] = mapped_column(default=ProcessingStatus.pending)
    # Extraction fields
    merchant: Mapped[Optional[str]] = mapped_column(String(255))
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    date: Mapped[Optional[date_type]]
    category: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    # Statement assignment and match link
    statement_id: Mapped[Optional[int]] = mapped_column(ForeignKey("statements.id"), index=True)
    is_matched: Mapped[bool] = mapped_column(default=False, index=True)
    matched_charge_id: Mapped[Optional[int]] = mapped_column(index=True)
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())
