"""
Session Service - start, autosave, submit and review of test sessions.

Autosave and submit run inside with_session_lock(), so two requests for the
same session never interleave. Submit is the only place a session is scored
and it refuses sessions that are already submitted: a resubmission never
overwrites a recorded score.
"""

import json
from typing import Any, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from gateprep.config import SESSION_DURATION_SEC
from gateprep.errors import ActiveSessionExists, NoQuestionsAvailable, SessionRejected
from gateprep.logging_config import get_logger, log_with_context
from gateprep.models.question_attempt import QuestionAttempt
from gateprep.models.test_session import TestSession
from gateprep.services.evaluator import Tolerance
from gateprep.services.question_bank import select_questions
from gateprep.services.scoring import score_attempt
from gateprep.services.session_lock import LockResult, with_session_lock
from gateprep.services.timer import (
    clamp_int, compute_remaining_seconds, safe_answers_payload, snapshot_timer, utcnow,
)

logger = get_logger("session")

# Fields never sent to a learner while the session is active.
HIDDEN_FIELDS = ("answer", "solution")


def public_question(snapshot: dict) -> dict:
    return {k: v for k, v in snapshot.items() if k not in HIDDEN_FIELDS}


def serialize_session(session: TestSession, now=None, include_questions: bool = False) -> dict:
    """Serialize a TestSession for API responses (answer keys stay hidden)."""
    result = {
        "id": session.id,
        "user_id": session.user_id,
        "status": session.status,
        "is_submitted": bool(session.is_submitted),
        "mode": session.mode,
        "subject": session.subject,
        "total_questions": session.total_questions,
        "question_ids": session.question_ids_list,
        "answers": session.answers_dict,
        "duration_sec": session.duration_sec,
        "remaining_time": (session.remaining_time if session.is_submitted
                           else compute_remaining_seconds(session, now=now)),
        "timer_is_paused": bool(session.timer_is_paused),
        "score": session.score,
        "accuracy": session.accuracy,
        "max_score": session.max_score,
        "created_at": session.created_at.isoformat() if session.created_at else None,
        "submitted_at": session.submitted_at.isoformat() if session.submitted_at else None,
    }
    if include_questions:
        result["questions"] = [public_question(q) for q in session.questions_list]
    return result


def find_active_session(db: Session, user_id: str) -> Optional[TestSession]:
    return (
        db.query(TestSession)
        .filter(TestSession.user_id == user_id, TestSession.is_submitted.is_(False))
        .order_by(TestSession.created_at.desc())
        .first()
    )


def start_session(db: Session, user_id: str, question_ids: Optional[List[str]] = None,
                  subjects: Optional[List[str]] = None, count: int = 10,
                  mode: str = "main", subject: Optional[str] = None,
                  section: Optional[str] = None, difficulty: Optional[str] = None,
                  duration_sec: Optional[int] = None) -> TestSession:
    """
    Create an ACTIVE session with a frozen snapshot of the selected paper.

    Raises:
        ActiveSessionExists: the user must submit the current session first
        NoQuestionsAvailable: selection returned nothing
    """
    active = find_active_session(db, user_id)
    if active:
        raise ActiveSessionExists(user_id, active.id)

    questions = select_questions(db, question_ids=question_ids, subjects=subjects,
                                 count=count, section=section, difficulty=difficulty)
    if not questions:
        raise NoQuestionsAvailable("No questions matched the requested selection")

    snapshot = [q.to_snapshot() for q in questions]
    duration = clamp_int(duration_sec if duration_sec is not None else SESSION_DURATION_SEC,
                         1, 24 * 60 * 60)

    session = TestSession(
        user_id=user_id,
        question_ids=json.dumps([q["id"] for q in snapshot]),
        questions=json.dumps(snapshot),
        answers="{}",
        duration_sec=duration,
        remaining_time=duration,
        timer_started_at=utcnow(),
        timer_is_paused=False,
        is_submitted=False,
        total_questions=len(snapshot),
        mode=mode,
        subject=subject,
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    log_with_context(logger, "INFO", "Session started with {} questions".format(len(snapshot)),
                     context={"session_id": session.id, "user_id": user_id},
                     extra_data={"mode": mode, "duration_sec": duration})
    return session


def autosave_session(session_factory: sessionmaker, session_id: str, answers: Any,
                     remaining_time: Optional[int] = None,
                     paused: Optional[bool] = None) -> LockResult:
    """Replace in-progress answers and snapshot the timer. ACTIVE sessions only."""

    def operation(db: Session, session: TestSession) -> dict:
        if session.is_submitted:
            raise SessionRejected(session.id, "session already submitted")

        session.answers = json.dumps(safe_answers_payload(answers))
        remaining = snapshot_timer(session, remaining_time=remaining_time, paused=paused)
        db.flush()

        log_with_context(logger, "DEBUG", "Autosaved session",
                         context={"session_id": session.id, "user_id": session.user_id},
                         extra_data={"remaining_time": remaining,
                                     "answered": len(session.answers_dict)})
        return {"id": session.id, "remaining_time": remaining,
                "timer_is_paused": bool(session.timer_is_paused)}

    return with_session_lock(session_factory, session_id, operation)


def submit_session(session_factory: sessionmaker, session_id: str, answers: Any = None,
                   remaining_time: Optional[int] = None,
                   tolerance: Optional[Tolerance] = None) -> LockResult:
    """
    Score an ACTIVE session exactly once and move it to SUBMITTED.

    Answers sent with the submit replace the autosaved ones; without them
    the last autosave is scored.
    """

    def operation(db: Session, session: TestSession) -> dict:
        if session.is_submitted:
            raise SessionRejected(session.id, "session already submitted")

        if answers is not None:
            session.answers = json.dumps(safe_answers_payload(answers))

        context = {"session_id": session.id, "user_id": session.user_id}
        questions = session.questions_list
        policy = tolerance or Tolerance()
        evaluation, summary = score_attempt(questions, session.answers_dict,
                                            tolerance=policy, context=context)

        now = utcnow()
        remaining = snapshot_timer(session, remaining_time=remaining_time, paused=True, now=now)
        session.score = summary.score
        session.accuracy = summary.accuracy
        session.max_score = summary.max_score
        session.is_submitted = True
        session.submitted_at = now
        session.evaluation = json.dumps({
            **evaluation.to_dict(),
            "summary": summary.to_dict(),
            "tolerance": {"abs_tol": policy.abs_tol, "rel_tol": policy.rel_tol,
                          "case_sensitive": policy.case_sensitive}
        }, default=str)

        for item in evaluation.items:
            db.add(QuestionAttempt(
                session_id=session.id,
                position=item.index,
                user_id=session.user_id,
                question_id=str(item.question_id) if item.question_id is not None else None,
                subject=item.subject,
                topic=item.topic,
                type=item.type.value,
                is_correct=item.is_correct,
                is_skipped=item.is_skipped,
                marks_awarded=item.marks_awarded,
                neg_awarded=item.negative_awarded,
                answer_given=json.dumps(item.submitted, default=str),
                correct_answer=json.dumps(item.reference, default=str),
                created_at=now,
            ))
        db.flush()

        log_with_context(logger, "INFO",
            "Session submitted: score {} / {}".format(summary.score, summary.max_score),
            context=context,
            extra_data={"accuracy": summary.accuracy, "remaining_time": remaining})

        return {
            "id": session.id,
            "score": summary.score,
            "accuracy": summary.accuracy,
            "max_score": summary.max_score,
            "remaining_time": remaining,
            "totals": evaluation.totals.to_dict(),
            "breakdown": summary.to_dict()["breakdown"],
        }

    return with_session_lock(session_factory, session_id, operation)


def review_session(db: Session, session_id: str) -> Optional[dict]:
    """
    Item verdicts and summary of a submitted session, None if it does not exist.

    Stored verdicts are returned as recorded; sessions submitted without a
    stored evaluation are re-scored from their snapshot (not persisted).

    Raises:
        SessionRejected: the session is still active
    """
    session = db.query(TestSession).filter(TestSession.id == session_id).first()
    if session is None:
        return None
    if not session.is_submitted:
        raise SessionRejected(session.id, "session not submitted yet")

    stored = session.evaluation_dict
    if stored is None:
        evaluation, summary = score_attempt(session.questions_list, session.answers_dict,
                                            context={"session_id": session.id})
        stored = {**evaluation.to_dict(), "summary": summary.to_dict()}

    return {
        "session": serialize_session(session),
        "questions": session.questions_list,
        "items": stored.get("items", []),
        "totals": stored.get("totals", {}),
        "summary": stored.get("summary", {}),
    }


def list_history(db: Session, user_id: str) -> List[dict]:
    sessions = (
        db.query(TestSession)
        .filter(TestSession.user_id == user_id)
        .order_by(TestSession.created_at.desc())
        .all()
    )
    return [serialize_session(s) for s in sessions]
