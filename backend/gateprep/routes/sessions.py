"""
Test session API routes.

Provides endpoints for:
- Starting a session from explicit question ids or a random selection
- Fetching the active session (with server-computed remaining time)
- Autosaving answers and submitting for scoring (both row-locked)
- Reviewing a submitted session and listing history
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from gateprep.database import get_db, get_session_factory
from gateprep.errors import ActiveSessionExists, NoQuestionsAvailable, SessionRejected
from gateprep.logging_config import get_logger, log_with_context
from gateprep.models.test_session import TestSession
from gateprep.services.evaluator import Tolerance
from gateprep.services.session_lock import LockResult, LockStatus
from gateprep.services.sessions import (
    autosave_session, find_active_session, list_history, review_session,
    serialize_session, start_session, submit_session,
)

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StartRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    question_ids: Optional[List[str]] = Field(None, description="Explicit paper, in order")
    subjects: Optional[List[str]] = Field(None, description="Restrict random selection")
    count: int = Field(10, ge=1, le=100)
    section: Optional[str] = None
    difficulty: Optional[str] = None
    mode: str = "main"
    subject: Optional[str] = None
    duration_sec: Optional[int] = Field(None, ge=1)


class AutosaveRequest(BaseModel):
    answers: Any = Field(default_factory=dict)
    remaining_time: Optional[int] = Field(None, ge=0)
    paused: Optional[bool] = None


class SubmitRequest(BaseModel):
    answers: Any = Field(None, description="Final answers; omit to score the last autosave")
    remaining_time: Optional[int] = Field(None, ge=0)
    abs_tol: Optional[float] = Field(None, ge=0)
    rel_tol: Optional[float] = Field(None, ge=0)


_LOCK_STATUS_CODES = {
    LockStatus.NOT_FOUND: 404,
    LockStatus.REJECTED: 409,
    LockStatus.FAILED: 500,
}


def _unwrap(result: LockResult, session_id: str, action: str):
    """Return the operation data, or raise the HTTP error matching the lock outcome."""
    if result.ok:
        return result.data
    status_code = _LOCK_STATUS_CODES[result.status]
    log_with_context(logger, "WARNING" if status_code < 500 else "ERROR",
        "{} failed: {}".format(action, result.error),
        context={"session_id": session_id},
        extra_data={"status": result.status.value})
    detail = result.error if status_code < 500 else "{} failed".format(action)
    raise HTTPException(status_code=status_code, detail=detail)


@router.post("/api/sessions")
def create_session(request: StartRequest, db: Session = Depends(get_db)):
    """Start a new timed session."""
    try:
        session = start_session(
            db, request.user_id,
            question_ids=request.question_ids,
            subjects=request.subjects,
            count=request.count,
            mode=request.mode,
            subject=request.subject,
            section=request.section,
            difficulty=request.difficulty,
            duration_sec=request.duration_sec,
        )
    except ActiveSessionExists as e:
        raise HTTPException(status_code=409, detail={
            "error": "Active test already exists. Please submit it first.",
            "active_session_id": e.active_session_id,
        })
    except NoQuestionsAvailable as e:
        raise HTTPException(status_code=422, detail=str(e))

    return serialize_session(session, include_questions=True)


@router.get("/api/sessions/active")
def get_active_session(user_id: str = Query(...), db: Session = Depends(get_db)):
    """The user's newest unsubmitted session, or null."""
    session = find_active_session(db, user_id)
    if session is None:
        return None
    return serialize_session(session, include_questions=True)


@router.get("/api/sessions/history")
def get_history(user_id: str = Query(...), db: Session = Depends(get_db)):
    return list_history(db, user_id)


@router.get("/api/sessions/{session_id}")
def get_session(session_id: str, db: Session = Depends(get_db)):
    session = db.query(TestSession).filter(TestSession.id == session_id).first()
    if session is None:
        raise HTTPException(status_code=404, detail="Test session not found")
    return serialize_session(session, include_questions=True)


@router.post("/api/sessions/{session_id}/autosave")
def autosave(session_id: str, request: AutosaveRequest,
             session_factory: sessionmaker = Depends(get_session_factory)):
    """Store in-progress answers and the timer snapshot."""
    result = autosave_session(session_factory, session_id, request.answers,
                              remaining_time=request.remaining_time, paused=request.paused)
    data = _unwrap(result, session_id, "Autosave")
    return {"ok": True, **data}


@router.post("/api/sessions/{session_id}/submit")
def submit(session_id: str, request: Optional[SubmitRequest] = None,
           session_factory: sessionmaker = Depends(get_session_factory)):
    """Score the session once and close it."""
    request = request or SubmitRequest()
    tolerance = Tolerance.from_values(request.abs_tol, request.rel_tol)
    result = submit_session(session_factory, session_id, answers=request.answers,
                            remaining_time=request.remaining_time, tolerance=tolerance)
    return _unwrap(result, session_id, "Submit")


@router.get("/api/sessions/{session_id}/review")
def review(session_id: str, db: Session = Depends(get_db)):
    """Verdicts for every question of a submitted session."""
    try:
        result = review_session(db, session_id)
    except SessionRejected as e:
        raise HTTPException(status_code=409, detail=e.reason)
    if result is None:
        raise HTTPException(status_code=404, detail="Test session not found")
    return result
