"""
Per-Item Evaluator - decides correct / wrong / skipped for each question.

Rules by question type:
1. MCQ: canonical label equals the key label
2. MSQ: canonical label set equals the key set exactly (no partial credit)
3. NAT: submitted number inside the key range (± abs tolerance), or close
   to any member of the key set (abs OR relative tolerance); text answers
   compare as trimmed text

Marking: a correct item earns its marks; a wrong MCQ loses its negative
marks; wrong MSQ/NAT items and skipped items lose nothing.

This is the only place correctness is decided. The evaluate endpoint, the
submit flow and the review screen all go through evaluate_attempt().
"""

from collections.abc import Mapping
from dataclasses import dataclass, asdict, field
from typing import Any, List, Optional

from gateprep.config import NAT_ABS_TOL, NAT_REL_TOL, NAT_TEXT_CASE_SENSITIVE
from gateprep.logging_config import get_logger, log_with_context, timed
from gateprep.services.normalizer import (
    AnswerKind, CanonicalAnswer, QuestionType, normalize_reference,
    normalize_submitted, parse_number, sanitize_type,
)

logger = get_logger("evaluator")

# Absorbs binary float error at the tolerance boundary (3.15 vs 3.14 ± 0.01).
_FLOAT_SLACK = 1e-12


@dataclass(frozen=True)
class Tolerance:
    """Numeric comparison policy for NAT questions."""
    abs_tol: float = NAT_ABS_TOL
    rel_tol: float = NAT_REL_TOL
    case_sensitive: bool = NAT_TEXT_CASE_SENSITIVE

    @classmethod
    def from_values(cls, abs_tol=None, rel_tol=None, case_sensitive=None) -> "Tolerance":
        """Build a policy, keeping defaults for any value that is None or invalid."""
        default = cls()
        abs_value = parse_number(abs_tol)
        rel_value = parse_number(rel_tol)
        return cls(
            abs_tol=abs(abs_value) if abs_value is not None else default.abs_tol,
            rel_tol=abs(rel_value) if rel_value is not None else default.rel_tol,
            case_sensitive=default.case_sensitive if case_sensitive is None else bool(case_sensitive),
        )


def _field(source: Any, *names: str, default=None):
    for name in names:
        if isinstance(source, Mapping):
            if name in source and source[name] is not None:
                return source[name]
        else:
            value = getattr(source, name, None)
            if value is not None:
                return value
    return default


def _stable_id(value: Any):
    if value is None or isinstance(value, (str, int)):
        return value
    return str(value)


@dataclass(frozen=True)
class QuestionRecord:
    """The slice of a question the evaluator needs."""
    id: Any
    type: QuestionType
    marks: float
    negative_marks: float
    answer_key: Any
    subject: Optional[str] = None
    topic: Optional[str] = None
    section: Optional[str] = None
    difficulty: Optional[str] = None

    @classmethod
    def from_source(cls, source: Any) -> "QuestionRecord":
        """
        Build a record from a mapping or an attribute-bearing object.

        Missing/unparseable marks default to 1, negative marks to 0.
        Negative marks are kept as a magnitude (-0.33 and 0.33 are the same).
        """
        if isinstance(source, cls):
            return source
        marks = parse_number(_field(source, "marks"))
        negative = parse_number(_field(source, "negative_marks", "negativeMarks", "neg_marks"))
        return cls(
            id=_stable_id(_field(source, "id", "question_id", "questionId")),
            type=sanitize_type(_field(source, "type")),
            marks=marks if marks is not None else 1.0,
            negative_marks=abs(negative) if negative is not None else 0.0,
            answer_key=_field(source, "answer_key", "answerKey", "answer"),
            subject=_field(source, "subject"),
            topic=_field(source, "topic"),
            section=_field(source, "section"),
            difficulty=_field(source, "difficulty"),
        )


@dataclass(frozen=True)
class EvaluationItem:
    index: int
    question_id: Any
    subject: Optional[str]
    topic: Optional[str]
    section: Optional[str]
    difficulty: Optional[str]
    type: QuestionType
    marks: float
    negative_marks: float
    submitted: Any
    reference: Any
    is_correct: bool
    is_wrong: bool
    is_skipped: bool
    marks_awarded: float
    negative_awarded: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass(frozen=True)
class EvaluationTotals:
    correct: int = 0
    wrong: int = 0
    skipped: int = 0
    attempted: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AttemptEvaluation:
    items: List[EvaluationItem] = field(default_factory=list)
    totals: EvaluationTotals = field(default_factory=EvaluationTotals)

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "totals": self.totals.to_dict()
        }


def numbers_close(value: float, reference: float, abs_tol: float, rel_tol: float) -> bool:
    """True when |value - reference| is within abs_tol, or within rel_tol of |reference|."""
    diff = abs(value - reference)
    if diff <= abs_tol + _FLOAT_SLACK:
        return True
    return diff / max(1e-9, abs(reference)) <= rel_tol + _FLOAT_SLACK


def _text_equal(left: Optional[str], right: Optional[str], case_sensitive: bool) -> bool:
    left = (left or "").strip()
    right = (right or "").strip()
    if case_sensitive:
        return left == right
    return left.casefold() == right.casefold()


def _numeric_member_matches(submitted: CanonicalAnswer, member: CanonicalAnswer,
                            tolerance: Tolerance) -> bool:
    if submitted.kind is AnswerKind.NUMERIC_SCALAR and member.kind is AnswerKind.NUMERIC_SCALAR:
        return numbers_close(submitted.number, member.number, tolerance.abs_tol, tolerance.rel_tol)
    return _text_equal(submitted.text, member.text, tolerance.case_sensitive)


def numeric_matches(submitted: CanonicalAnswer, reference: CanonicalAnswer,
                    tolerance: Tolerance) -> bool:
    """Apply the NAT rule to normalized answers. EMPTY never matches."""
    if submitted.is_empty or reference.is_empty:
        return False

    if reference.kind is AnswerKind.NUMERIC_RANGE:
        if submitted.kind is not AnswerKind.NUMERIC_SCALAR:
            return False
        low = reference.low - tolerance.abs_tol - _FLOAT_SLACK
        high = reference.high + tolerance.abs_tol + _FLOAT_SLACK
        return low <= submitted.number <= high

    if reference.kind is AnswerKind.NUMERIC_SET:
        members = reference.members
    else:
        members = (reference,)

    return any(_numeric_member_matches(submitted, m, tolerance) for m in members)


def is_correct(question_type: QuestionType, submitted: CanonicalAnswer,
               reference: CanonicalAnswer, tolerance: Tolerance) -> bool:
    if submitted.is_empty:
        return False
    if question_type is QuestionType.MULTI_CHOICE:
        return reference.kind is AnswerKind.MULTI_SET and submitted.labels == reference.labels
    if question_type is QuestionType.NUMERIC:
        return numeric_matches(submitted, reference, tolerance)
    return reference.kind is AnswerKind.SINGLE and submitted.text == reference.text


def evaluate_item(question: Any, submitted: Any, index: int = 0,
                  tolerance: Optional[Tolerance] = None) -> EvaluationItem:
    """
    Score one question against one raw answer.

    Args:
        question: QuestionRecord, mapping or object with question fields
        submitted: The learner's raw answer (None when absent)
        index: Position of the question in the paper
        tolerance: NAT comparison policy (defaults from configuration)

    Returns:
        EvaluationItem with exactly one of is_correct/is_wrong/is_skipped set
    """
    tolerance = tolerance or Tolerance()
    record = QuestionRecord.from_source(question)

    canonical_submitted = normalize_submitted(record.type, submitted)
    canonical_reference = normalize_reference(record.type, record.answer_key)

    skipped = canonical_submitted.is_empty
    correct = (not skipped) and is_correct(record.type, canonical_submitted,
                                           canonical_reference, tolerance)
    wrong = not skipped and not correct

    negative = 0.0
    if wrong and record.type is QuestionType.SINGLE_CHOICE:
        negative = record.negative_marks

    return EvaluationItem(
        index=index,
        question_id=record.id,
        subject=record.subject,
        topic=record.topic,
        section=record.section,
        difficulty=record.difficulty,
        type=record.type,
        marks=record.marks,
        negative_marks=record.negative_marks,
        submitted=submitted,
        reference=record.answer_key,
        is_correct=correct,
        is_wrong=wrong,
        is_skipped=skipped,
        marks_awarded=record.marks if correct else 0.0,
        negative_awarded=negative,
    )


def lookup_answer(answers: Any, question_id: Any, index: int) -> Any:
    """
    Find the raw answer for a question.

    Sequences are positional. Mappings are searched by question id first
    (string, then raw key), then by position (string, then int key).
    """
    if isinstance(answers, (list, tuple)):
        return answers[index] if 0 <= index < len(answers) else None
    if not isinstance(answers, Mapping):
        return None

    keys = []
    if question_id is not None:
        keys.extend([str(question_id), question_id])
    keys.extend([str(index), index])
    for key in keys:
        if key in answers:
            return answers[key]
    return None


def evaluate_attempt(questions: Any, answers: Any,
                     tolerance: Optional[Tolerance] = None,
                     context: Optional[dict] = None) -> AttemptEvaluation:
    """
    Evaluate a whole paper.

    Args:
        questions: Ordered question list (non-lists are treated as empty)
        answers: Mapping keyed by question id or index, or a positional list
        tolerance: NAT comparison policy
        context: Extra log context (session_id, user_id)

    Returns:
        AttemptEvaluation with per-item verdicts and totals
    """
    tolerance = tolerance or Tolerance()
    question_list = list(questions) if isinstance(questions, (list, tuple)) else []

    items = []
    correct = wrong = skipped = 0

    with timed() as elapsed:
        for index, question in enumerate(question_list):
            record = QuestionRecord.from_source(question)
            given = lookup_answer(answers, record.id, index)
            item = evaluate_item(record, given, index=index, tolerance=tolerance)
            items.append(item)

            if item.is_skipped:
                skipped += 1
            elif item.is_correct:
                correct += 1
            else:
                wrong += 1

    total = len(items)
    totals = EvaluationTotals(
        correct=correct,
        wrong=wrong,
        skipped=skipped,
        attempted=total - skipped,
        total=total
    )

    log_with_context(logger, "DEBUG",
        "Evaluated {} questions (correct={}, wrong={}, skipped={})".format(
            total, correct, wrong, skipped),
        context=context,
        extra_data={
            "duration_ms": elapsed(),
            "abs_tol": tolerance.abs_tol,
            "rel_tol": tolerance.rel_tol
        })

    return AttemptEvaluation(items=items, totals=totals)
