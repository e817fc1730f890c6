"""
Question Bank Service - validated import and selection of questions.

Import pipeline per row:
1. Fill subject/topic/section/difficulty from batch defaults
2. Sanitize the type label (unknown -> MCQ)
3. Validate: subject and question text required, MCQ/MSQ need options
4. Compute a content hash over the normalized fields
5. Insert unless the hash already exists (duplicate rows are skipped)

Content hashing ignores case and runs of whitespace, so re-imports of the
same generated paper with cosmetic differences are caught.
"""

import hashlib
import json
import re
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from gateprep.config import MAX_IMPORT_BATCH
from gateprep.errors import QuestionImportError
from gateprep.logging_config import get_logger, log_with_context, timed
from gateprep.models.question import Question
from gateprep.services.normalizer import QuestionType, parse_number, sanitize_type

logger = get_logger("db")

SECTIONS = ("GE", "EC")
DIFFICULTIES = ("easy", "medium", "hard")
MAX_SELECT = 100


def normalize_text(value: Any) -> str:
    """Lowercase and collapse whitespace runs to one space."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip().lower()


def normalize_section(value: Any) -> str:
    section = str(value or "").strip().upper()
    return section if section in SECTIONS else "EC"


def normalize_difficulty(value: Any) -> str:
    difficulty = str(value or "").strip().lower()
    return difficulty if difficulty in DIFFICULTIES else "medium"


def compute_question_hash(row: dict) -> str:
    """
    SHA-256 over the identity-bearing fields of a question.

    Marks, solution and source are excluded: the same question with a
    different explanation is still the same question.
    """
    options = row.get("options") or {}
    canonical = {
        "section": row.get("section"),
        "subject": normalize_text(row.get("subject")),
        "topic": normalize_text(row.get("topic")),
        "type": row.get("type"),
        "question": normalize_text(row.get("question")),
        "options": {str(k).strip().upper(): normalize_text(v) for k, v in options.items()},
        "answer": row.get("answer"),
    }
    payload = json.dumps(canonical, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_row(raw: dict, position: int, defaults: Optional[dict] = None) -> dict:
    """
    Validate and normalize one import row.

    Args:
        raw: Question fields as received
        position: 1-based row number for error messages
        defaults: Batch-level subject/topic/section/difficulty

    Raises:
        QuestionImportError: the row cannot be stored
    """
    defaults = defaults or {}
    if not isinstance(raw, dict):
        raise QuestionImportError(position, "question must be an object")

    subject = str(raw.get("subject") or defaults.get("subject") or "").strip()
    topic = str(raw.get("topic") or defaults.get("topic") or "Mixed").strip()
    question_type = sanitize_type(raw.get("type"))
    question = str(raw.get("question") or "").strip()

    if not subject:
        raise QuestionImportError(position, "subject missing")
    if not question:
        raise QuestionImportError(position, "question missing")

    options = None
    if question_type is not QuestionType.NUMERIC:
        options = raw.get("options")
        if not isinstance(options, dict) or not options:
            raise QuestionImportError(
                position, "options object required for {}".format(question_type.value))

    answer = raw.get("answer")
    if isinstance(answer, str):
        answer = answer.strip()
    if answer is None or answer == "" or answer == [] or answer == {}:
        raise QuestionImportError(position, "answer missing")

    marks = parse_number(raw.get("marks"))
    neg_marks = parse_number(raw.get("neg_marks", raw.get("negative_marks")))

    row = {
        "section": normalize_section(raw.get("section") or defaults.get("section")),
        "difficulty": normalize_difficulty(raw.get("difficulty") or defaults.get("difficulty")),
        "subject": subject,
        "topic": topic or "Mixed",
        "type": question_type.value,
        "marks": marks if marks is not None else 1.0,
        "neg_marks": abs(neg_marks) if neg_marks is not None else 0.0,
        "question": question,
        "options": options,
        "answer": answer,
        "solution": str(raw.get("solution") or "").strip() or None,
        "source": str(raw.get("source") or "AI").strip(),
    }
    row["question_hash"] = compute_question_hash(row)
    return row


def import_questions(db: Session, questions: List[dict], defaults: Optional[dict] = None) -> dict:
    """
    Validate a batch, then insert every row whose content hash is new.

    The whole batch is validated before anything is written; one bad row
    rejects the batch.

    Returns:
        Dict with inserted count, skipped (duplicate) count and new ids
    """
    if not questions:
        raise QuestionImportError(0, "questions[] is required")
    if len(questions) > MAX_IMPORT_BATCH:
        raise QuestionImportError(0, "max {} questions per import".format(MAX_IMPORT_BATCH))

    with timed() as elapsed:
        rows = [build_row(raw, i + 1, defaults) for i, raw in enumerate(questions)]

        hashes = [r["question_hash"] for r in rows]
        existing = {
            h for (h,) in db.query(Question.question_hash)
            .filter(Question.question_hash.in_(hashes)).all()
        }

        ids = []
        skipped = 0
        for row in rows:
            if row["question_hash"] in existing:
                skipped += 1
                continue
            existing.add(row["question_hash"])

            question = Question(
                question_hash=row["question_hash"],
                section=row["section"],
                difficulty=row["difficulty"],
                subject=row["subject"],
                topic=row["topic"],
                type=row["type"],
                marks=row["marks"],
                neg_marks=row["neg_marks"],
                question=row["question"],
                options=json.dumps(row["options"]) if row["options"] is not None else None,
                answer=json.dumps(row["answer"]),
                solution=row["solution"],
                source=row["source"],
            )
            db.add(question)
            db.flush()
            ids.append(question.id)

        db.commit()

    log_with_context(logger, "INFO",
        "Imported {} questions ({} duplicates skipped)".format(len(ids), skipped),
        extra_data={"duration_ms": elapsed(), "received": len(rows)})

    return {"inserted": len(ids), "skipped": skipped, "ids": ids}


def select_questions(db: Session, question_ids: Optional[List[str]] = None,
                     subjects: Optional[List[str]] = None, count: int = 10,
                     section: Optional[str] = None,
                     difficulty: Optional[str] = None) -> List[Question]:
    """
    Pick the questions for a new paper.

    Explicit question_ids keep their order (unknown ids are dropped).
    Otherwise a random sample of count (clamped to 1..100) is drawn,
    optionally restricted by subject, section and difficulty.
    """
    if question_ids:
        found = {q.id: q for q in db.query(Question).filter(Question.id.in_(question_ids)).all()}
        missing = [qid for qid in question_ids if qid not in found]
        if missing:
            log_with_context(logger, "WARNING",
                "{} requested question ids not found".format(len(missing)),
                extra_data={"missing": missing[:20]})
        return [found[qid] for qid in question_ids if qid in found]

    count = max(1, min(int(count or 10), MAX_SELECT))
    query = db.query(Question)
    if subjects:
        query = query.filter(Question.subject.in_(subjects))
    if section:
        query = query.filter(Question.section == normalize_section(section))
    if difficulty:
        query = query.filter(Question.difficulty == normalize_difficulty(difficulty))
    return query.order_by(func.random()).limit(count).all()
