"""
Analytics API routes - learner performance reports.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gateprep.database import get_db
from gateprep.services.analytics import (
    build_overview, build_weakness_report, recommendations_from_report,
)

router = APIRouter()


@router.get("/api/analytics/overview")
def analytics_overview(
    user_id: str = Query(..., description="Learner identifier"),
    days: int = Query(30, description="Window in days (1-365)"),
    db: Session = Depends(get_db)
):
    return build_overview(db, user_id, days=days)


@router.get("/api/analytics/weakness")
def analytics_weakness(
    user_id: str = Query(..., description="Learner identifier"),
    days: int = Query(30, description="Window in days (1-365)"),
    min_attempts: int = Query(10, description="Minimum items per group (1-500)"),
    db: Session = Depends(get_db)
):
    return build_weakness_report(db, user_id, days=days, min_attempts=min_attempts)


@router.get("/api/analytics/recommendations")
def analytics_recommendations(
    user_id: str = Query(..., description="Learner identifier"),
    days: int = Query(30, description="Window in days (1-365)"),
    min_attempts: int = Query(10, description="Minimum items per group (1-500)"),
    db: Session = Depends(get_db)
):
    """Weakness report plus suggested next steps."""
    report = build_weakness_report(db, user_id, days=days, min_attempts=min_attempts)
    return {
        "report": report,
        **recommendations_from_report(report)
    }
