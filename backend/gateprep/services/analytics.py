"""
Analytics Service - performance reports over submitted sessions.

Reports read the per-question rows written at submit time:
- overview: attempt count, average/best score, average accuracy, per-subject
  totals (weakest subject first)
- weakness report: subjects and subject/topic pairs with enough attempted
  items, ordered by ascending accuracy (groups with nothing attempted last)
- recommendations: concrete next steps derived from the weakness report
"""

from datetime import timedelta
from typing import List

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from gateprep.logging_config import get_logger, log_with_context
from gateprep.models.question_attempt import QuestionAttempt
from gateprep.models.test_session import TestSession
from gateprep.services.scoring import UNKNOWN_SUBJECT, accuracy_percent
from gateprep.services.timer import clamp_int, utcnow

logger = get_logger("analytics")

UNKNOWN_TOPIC = "Mixed"


def _window_start(days: int):
    return utcnow() - timedelta(days=days)


def _group_rows(db: Session, user_id: str, since, by_topic: bool) -> List[dict]:
    subject_col = func.coalesce(QuestionAttempt.subject, UNKNOWN_SUBJECT)
    topic_col = func.coalesce(QuestionAttempt.topic, UNKNOWN_TOPIC)
    group_cols = [subject_col, topic_col] if by_topic else [subject_col]

    rows = (
        db.query(
            *group_cols,
            func.count().label("total"),
            func.sum(case((QuestionAttempt.is_correct.is_(True), 1), else_=0)).label("correct"),
            func.sum(case((QuestionAttempt.is_skipped.is_(True), 1), else_=0)).label("skipped"),
            func.sum(QuestionAttempt.marks_awarded).label("marks"),
            func.sum(QuestionAttempt.neg_awarded).label("neg"),
        )
        .filter(QuestionAttempt.user_id == user_id, QuestionAttempt.created_at >= since)
        .group_by(*group_cols)
        .all()
    )

    result = []
    for row in rows:
        total = int(row.total or 0)
        correct = int(row.correct or 0)
        skipped = int(row.skipped or 0)
        marks = float(row.marks or 0)
        neg = float(row.neg or 0)
        attempted = total - skipped
        entry = {
            "subject": row[0],
            "total": total,
            "correct": correct,
            "skipped": skipped,
            "attempted": attempted,
            "marks": marks,
            "neg": neg,
            "score": marks - neg,
            "accuracy": accuracy_percent(correct, attempted),
        }
        if by_topic:
            entry["topic"] = row[1]
        result.append(entry)
    return result


def _weakest_first(rows: List[dict]) -> List[dict]:
    """Ascending accuracy, nothing-attempted groups last, bigger groups first on ties."""
    return sorted(rows, key=lambda r: (r["attempted"] == 0, r["accuracy"], -r["total"]))


def build_overview(db: Session, user_id: str, days: int = 30) -> dict:
    days = clamp_int(days, 1, 365)
    since = _window_start(days)

    meta = (
        db.query(
            func.count(TestSession.id),
            func.avg(TestSession.score),
            func.max(TestSession.score),
            func.avg(TestSession.accuracy),
        )
        .filter(TestSession.user_id == user_id,
                TestSession.is_submitted.is_(True),
                TestSession.created_at >= since)
        .one()
    )

    by_subject = sorted(_group_rows(db, user_id, since, by_topic=False),
                        key=lambda r: (r["score"], -r["total"]))

    log_with_context(logger, "INFO", "Overview built",
                     context={"user_id": user_id},
                     extra_data={"days": days, "subjects": len(by_subject)})

    return {
        "window_days": days,
        "attempts": int(meta[0] or 0),
        "avg_score": float(meta[1] or 0),
        "best_score": float(meta[2] or 0),
        "avg_accuracy": float(meta[3] or 0),
        "by_subject": by_subject,
    }


def build_weakness_report(db: Session, user_id: str, days: int = 30,
                          min_attempts: int = 10) -> dict:
    days = clamp_int(days, 1, 365)
    min_attempts = clamp_int(min_attempts, 1, 500)
    since = _window_start(days)

    subjects = [r for r in _group_rows(db, user_id, since, by_topic=False)
                if r["total"] >= min_attempts]
    topics = [r for r in _group_rows(db, user_id, since, by_topic=True)
              if r["total"] >= min_attempts]

    log_with_context(logger, "INFO", "Weakness report built",
                     context={"user_id": user_id},
                     extra_data={"days": days, "min_attempts": min_attempts,
                                 "subjects": len(subjects), "topics": len(topics)})

    return {
        "window_days": days,
        "min_attempts": min_attempts,
        "weak_subjects": _weakest_first(subjects),
        "weak_topics": _weakest_first(topics),
    }


def recommendations_from_report(report: dict) -> dict:
    """Up to 3 subject-focus and 6 topic-drill actions, plus the MCQ strategy tip."""
    weak_subjects = report.get("weak_subjects") or []
    weak_topics = report.get("weak_topics") or []

    focus_subjects = sorted(weak_subjects, key=lambda r: (r["accuracy"], -r["total"]))[:3]
    focus_topics = sorted(weak_topics, key=lambda r: (r["accuracy"], -r["total"]))[:6]

    actions = []
    for s in focus_subjects:
        actions.append({
            "type": "subject-focus",
            "subject": s["subject"],
            "message": "Low accuracy in {} ({}%) over {} attempts. "
                       "Do a focused revision + 30 mixed questions.".format(
                           s["subject"], s["accuracy"], s["attempted"]),
        })
    for t in focus_topics:
        actions.append({
            "type": "topic-drill",
            "subject": t["subject"],
            "topic": t["topic"],
            "message": "Topic drill: {} -> {} ({}%). "
                       "Do 15 questions + note common mistakes.".format(
                           t["subject"], t["topic"], t["accuracy"]),
        })
    actions.append({
        "type": "strategy",
        "message": "For MCQ negatives: attempt only when you can eliminate at least "
                   "2 options; else mark for review.",
    })

    return {
        "focus_subjects": focus_subjects,
        "focus_topics": focus_topics,
        "actions": actions,
    }
