"""Router for rejection analytics.

Endpoints:
  GET /analytics/patterns               – Pattern insights over a window of days
  GET /analytics/problematic-merchants  – Merchant pairs that keep failing to match
  GET /analytics/recommendations        – Actionable recommendations
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.matching import PatternInsightResponse, ProblematicMerchantResponse
from app.services.pattern_service import PatternAnalyzer
from app.services.storage import SqlMatchStorage

router = APIRouter()


def get_analyzer(db: Session = Depends(get_db)) -> PatternAnalyzer:
    return PatternAnalyzer(SqlMatchStorage(db))


@router.get("/patterns", response_model=List[PatternInsightResponse])
def list_patterns(
    days: int = Query(30, ge=1, le=365),
    analyzer: PatternAnalyzer = Depends(get_analyzer),
):
    return analyzer.analyze_patterns(days)


@router.get("/problematic-merchants", response_model=List[ProblematicMerchantResponse])
def list_problematic_merchants(
    limit: int = Query(10, ge=1, le=100),
    analyzer: PatternAnalyzer = Depends(get_analyzer),
):
    return analyzer.get_problematic_merchants(limit)


@router.get("/recommendations", response_model=List[str])
def list_recommendations(analyzer: PatternAnalyzer = Depends(get_analyzer)):
    return analyzer.generate_recommendations()
