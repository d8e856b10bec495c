"""Router for receipt/charge matching.

Endpoints:
  GET    /matching/candidates                      – All candidate pairs (optionally one statement's charges)
  GET    /matching/receipts/{receipt_id}/candidates – Ranked charges for one receipt
  POST   /matching/confirm                         – Link a receipt and a charge
  DELETE /matching/receipts/{receipt_id}/match     – Unlink a receipt
  POST   /matching/receipts/{receipt_id}/auto-match – Try to link without confirmation
  POST   /matching/skips                           – Record a rejected suggestion
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import AlreadyMatchedError, NotFoundError, PersistenceError
from app.schemas.matching import (
    AutoMatchResponse,
    CandidateResponse,
    ConfirmMatchRequest,
    MatchResponse,
    SkipRecordResponse,
    SkipRequest,
)
from app.services.auto_match_service import attempt_auto_match
from app.services.matching_service import MatchingEngine
from app.services.skip_service import record_skip
from app.services.storage import SqlMatchStorage

router = APIRouter()
logger = logging.getLogger(__name__)


def get_storage(db: Session = Depends(get_db)) -> SqlMatchStorage:
    return SqlMatchStorage(db)


def get_engine(storage: SqlMatchStorage = Depends(get_storage)) -> MatchingEngine:
    return MatchingEngine(storage)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AlreadyMatchedError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=503, detail="Storage unavailable")
    return HTTPException(status_code=500, detail="Matching failed")


@router.get("/candidates", response_model=List[CandidateResponse])
def list_candidates(
    statement_id: Optional[int] = Query(None, description="Only consider this statement's charges"),
    engine: MatchingEngine = Depends(get_engine),
):
    """Return candidate pairs sorted by confidence (highest first)."""
    try:
        return engine.get_candidates(statement_id)
    except PersistenceError as exc:
        raise _http_error(exc)


@router.get("/receipts/{receipt_id}/candidates", response_model=List[CandidateResponse])
def list_receipt_candidates(receipt_id: int, engine: MatchingEngine = Depends(get_engine)):
    try:
        return engine.get_candidates_for_receipt(receipt_id)
    except (NotFoundError, PersistenceError) as exc:
        raise _http_error(exc)


@router.post("/confirm", response_model=MatchResponse)
def confirm_match(body: ConfirmMatchRequest, engine: MatchingEngine = Depends(get_engine)):
    """Link a receipt to a charge (manual match or confirmed suggestion)."""
    try:
        receipt, charge = engine.confirm_match(body.receipt_id, body.charge_id)
    except (NotFoundError, AlreadyMatchedError, PersistenceError) as exc:
        raise _http_error(exc)
    return {"status": "matched", "receipt": receipt, "charge": charge}


@router.delete("/receipts/{receipt_id}/match", response_model=MatchResponse)
def unmatch_receipt(receipt_id: int, engine: MatchingEngine = Depends(get_engine)):
    """Remove the link from a receipt and its charge; unmatched receipts are left as-is."""
    try:
        engine.unmatch(receipt_id)
        receipt = engine.storage.get_receipt(receipt_id)
    except (NotFoundError, PersistenceError) as exc:
        raise _http_error(exc)
    return {"status": "unmatched", "receipt": receipt}


@router.post("/receipts/{receipt_id}/auto-match", response_model=AutoMatchResponse)
def auto_match_receipt(receipt_id: int, engine: MatchingEngine = Depends(get_engine)):
    return attempt_auto_match(engine, receipt_id)


@router.post("/skips", response_model=Optional[SkipRecordResponse], status_code=202)
def skip_suggestion(body: SkipRequest, storage: SqlMatchStorage = Depends(get_storage)):
    """Record that a suggested pair was rejected.  Failures are logged, never returned."""
    return record_skip(storage, body.receipt_id, body.charge_id, body.reason)
