"""Persistence collaborator for the matching core.

The matching services only talk to ``MatchStorage``; ``SqlMatchStorage`` is
the SQLAlchemy implementation used by the API and the periodic tasks.  Link
updates can be made conditional on the row still being unmatched, which is
what keeps two concurrent confirms from claiming the same charge.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import PersistenceError
from app.models.receipt import Receipt
from app.models.skip_record import SkipRecord
from app.models.statement import Charge

logger = logging.getLogger(__name__)


class MatchStorage(Protocol):
    def get_receipt(self, receipt_id: int) -> Optional[Receipt]: ...

    def get_charge(self, charge_id: int) -> Optional[Charge]: ...

    def get_receipts(self, receipt_ids: Iterable[int]) -> dict[int, Receipt]: ...

    def get_charges(self, charge_ids: Iterable[int]) -> dict[int, Charge]: ...

    def get_unmatched_receipts(self, statement_id: Optional[int] = None) -> list[Receipt]: ...

    def get_unmatched_charges(self, statement_id: Optional[int] = None) -> list[Charge]: ...

    def update_receipt(self, receipt_id: int, patch: dict, *, only_if_unmatched: bool = False) -> bool: ...

    def update_charge(self, charge_id: int, patch: dict, *, only_if_unmatched: bool = False) -> bool: ...

    def insert_skip_record(self, record: SkipRecord) -> SkipRecord: ...

    def query_skip_records(
        self,
        since: datetime,
        *,
        max_merchant_similarity: Optional[float] = None,
        min_date_diff: Optional[int] = None,
        min_amount_diff: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[SkipRecord]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class SqlMatchStorage:
    """``MatchStorage`` backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _run(self, description: str, fn):
        try:
            return fn()
        except SQLAlchemyError as exc:
            logger.error("Storage failure while %s: %s", description, exc)
            raise PersistenceError(f"Storage failure while {description}") from exc

    def get_receipt(self, receipt_id: int) -> Optional[Receipt]:
        return self._run("loading receipt", lambda: self.db.get(Receipt, receipt_id))

    def get_charge(self, charge_id: int) -> Optional[Charge]:
        return self._run("loading charge", lambda: self.db.get(Charge, charge_id))

    def get_receipts(self, receipt_ids: Iterable[int]) -> dict[int, Receipt]:
        ids = set(receipt_ids)
        if not ids:
            return {}
        rows = self._run(
            "batch-loading receipts",
            lambda: self.db.scalars(select(Receipt).where(Receipt.id.in_(ids))).all(),
        )
        return {r.id: r for r in rows}

    def get_charges(self, charge_ids: Iterable[int]) -> dict[int, Charge]:
        ids = set(charge_ids)
        if not ids:
            return {}
        rows = self._run(
            "batch-loading charges",
            lambda: self.db.scalars(select(Charge).where(Charge.id.in_(ids))).all(),
        )
        return {c.id: c for c in rows}

    def get_unmatched_receipts(self, statement_id: Optional[int] = None) -> list[Receipt]:
        stmt = select(Receipt).where(Receipt.is_matched.is_(False)).order_by(Receipt.id)
        if statement_id is not None:
            stmt = stmt.where(Receipt.statement_id == statement_id)
        return list(self._run("listing unmatched receipts", lambda: self.db.scalars(stmt).all()))

    def get_unmatched_charges(self, statement_id: Optional[int] = None) -> list[Charge]:
        stmt = select(Charge).where(Charge.is_matched.is_(False)).order_by(Charge.id)
        if statement_id is not None:
            stmt = stmt.where(Charge.statement_id == statement_id)
        return list(self._run("listing unmatched charges", lambda: self.db.scalars(stmt).all()))

    def _update(self, model, record_id: int, patch: dict, only_if_unmatched: bool) -> bool:
        stmt = update(model).where(model.id == record_id).values(**patch)
        if only_if_unmatched:
            stmt = stmt.where(model.is_matched.is_(False))
        result = self._run(
            f"updating {model.__tablename__} {record_id}",
            lambda: self.db.execute(stmt.execution_options(synchronize_session="fetch")),
        )
        return result.rowcount == 1

    def update_receipt(self, receipt_id: int, patch: dict, *, only_if_unmatched: bool = False) -> bool:
        return self._update(Receipt, receipt_id, patch, only_if_unmatched)

    def update_charge(self, charge_id: int, patch: dict, *, only_if_unmatched: bool = False) -> bool:
        return self._update(Charge, charge_id, patch, only_if_unmatched)

    def insert_skip_record(self, record: SkipRecord) -> SkipRecord:
        def _insert():
            self.db.add(record)
            self.db.commit()
            return record

        try:
            return self._run("inserting skip record", _insert)
        except PersistenceError:
            self.db.rollback()
            raise

    def query_skip_records(
        self,
        since: datetime,
        *,
        max_merchant_similarity: Optional[float] = None,
        min_date_diff: Optional[int] = None,
        min_amount_diff: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[SkipRecord]:
        stmt = (
            select(SkipRecord)
            .where(SkipRecord.skipped_at >= since)
            .order_by(SkipRecord.skipped_at.desc(), SkipRecord.id.desc())
        )
        if min_date_diff is not None:
            stmt = stmt.where(SkipRecord.date_diff > min_date_diff)
        if min_amount_diff is not None:
            stmt = stmt.where(SkipRecord.amount_diff > min_amount_diff)
        rows = list(self._run("querying skip records", lambda: self.db.scalars(stmt).all()))
        # merchant_similarity is stored as text, so the bound is applied here
        if max_merchant_similarity is not None:
            rows = [r for r in rows if _similarity_value(r) < max_merchant_similarity]
        return rows[:limit] if limit is not None else rows

    def commit(self) -> None:
        self._run("committing", self.db.commit)

    def rollback(self) -> None:
        self.db.rollback()


def _similarity_value(record: SkipRecord) -> float:
    # Null similarity never counts as a merchant mismatch
    try:
        return float(record.merchant_similarity)
    except (TypeError, ValueError):
        return 1.0
