"""Pydantic schemas for matching, skip recording and pattern analytics."""
from datetime import datetime, date as date_type
from decimal import Decimal
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class ReceiptSummary(BaseModel):
    id: int
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[date_type] = None
    category: Optional[str] = None
    is_matched: bool = False
    matched_charge_id: Optional[int] = None

    model_config = {"from_attributes": True}


class ChargeSummary(BaseModel):
    id: int
    statement_id: int
    description: str
    amount: str
    date: date_type
    category: Optional[str] = None
    is_matched: bool = False
    receipt_id: Optional[int] = None

    model_config = {"from_attributes": True}


class CandidateResponse(BaseModel):
    receipt: ReceiptSummary
    charge: ChargeSummary
    confidence: int = Field(ge=0, le=100)
    reasons: List[str] = []

    model_config = {"from_attributes": True}


class ConfirmMatchRequest(BaseModel):
    receipt_id: int
    charge_id: int


class MatchResponse(BaseModel):
    status: str
    receipt: ReceiptSummary
    charge: Optional[ChargeSummary] = None


class AutoMatchResponse(BaseModel):
    matched: bool
    confidence: Optional[int] = None
    charge_id: Optional[int] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class SkipRequest(BaseModel):
    receipt_id: int
    charge_id: int
    reason: Optional[str] = None


class SkipRecordResponse(BaseModel):
    id: Optional[int] = None
    receipt_id: int
    charge_id: int
    merchant_similarity: Optional[str] = None
    amount_diff: Decimal
    date_diff: int
    skip_reason: Optional[str] = None
    skipped_at: datetime

    model_config = {"from_attributes": True}


class PatternInsightResponse(BaseModel):
    type: str
    description: str
    frequency: int
    examples: List[dict[str, Any]] = []
    recommendation: str

    model_config = {"from_attributes": True}


class ProblematicMerchantResponse(BaseModel):
    receipt_merchant: str
    charge_merchant: str
    frequency: int
    avg_amount_diff: float
    avg_date_diff: float

    model_config = {"from_attributes": True}
