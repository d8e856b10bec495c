"""Models for card statements and their individual charges."""
from datetime import datetime, date as date_type
from typing import Optional
from sqlalchemy import String, Text, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class Statement(Base):
    """A statement period that groups imported card charges."""

    __tablename__ = "statements"

    id: Mapped[int] = mapped_column(primary_key=True)
    period_name: Mapped[str] = mapped_column(String(255))
    start_date: Mapped[date_type]
    end_date: Mapped[date_type]
    is_active: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    charges: Mapped[list["Charge"]] = relationship(
        "Charge", back_populates="statement", cascade="all, delete-orphan"
    )


class Charge(Base):
    """A single card charge.

    ``amount`` is kept as the statement's signed text (debits are negative);
    matching compares its absolute value.  ``receipt_id`` is a weak reference
    maintained together with ``Receipt.matched_charge_id``.
    """

    __tablename__ = "charges"

    id: Mapped[int] = mapped_column(primary_key=True)
    statement_id: Mapped[int] = mapped_column(ForeignKey("statements.id"), index=True)
    date: Mapped[date_type]
    description: Mapped[str] = mapped_column(String(500))
    card_member: Mapped[Optional[str]] = mapped_column(String(255))
    amount: Mapped[str] = mapped_column(String(32))
    category: Mapped[Optional[str]] = mapped_column(String(255))
    is_matched: Mapped[bool] = mapped_column(default=False, index=True)
    receipt_id: Mapped[Optional[int]] = mapped_column(index=True)
    is_personal_expense: Mapped[bool] = mapped_column(default=False)
    no_receipt_required: Mapped[bool] = mapped_column(default=False)
    is_non_amex: Mapped[bool] = mapped_column(default=False)
    user_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    statement: Mapped["Statement"] = relationship("Statement", back_populates="charges")
